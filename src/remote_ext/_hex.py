"""Hex helpers for storage keys, values and block hashes."""

from __future__ import annotations


def hex_display(data: bytes, *, max_bytes: int | None = None) -> str:
    """Render *data* as ``0x``-prefixed lowercase hex.

    With *max_bytes* set, longer inputs are cut and suffixed with the
    full length, which keeps DEBUG logs of large values readable.
    """
    if max_bytes is not None and len(data) > max_bytes:
        return f"0x{data[:max_bytes].hex()}…<{len(data)}b>"
    return f"0x{data.hex()}"


def parse_hex(text: str) -> bytes:
    """Decode a hex string with or without the ``0x`` prefix.

    Raises :class:`ValueError` for odd-length or non-hex input.
    """
    stripped = text.strip()
    if stripped[:2] in ("0x", "0X"):
        stripped = stripped[2:]
    return bytes.fromhex(stripped)
