"""Storage prefix hashing.

Substrate places every storage item of a module under
``twox128(module_name)``. twox-128 is two xxh64 digests of the same
input (seeds 0 and 1), each serialized little-endian and concatenated.
"""

from __future__ import annotations

import xxhash


def twox_128(data: bytes) -> bytes:
    """Return the 16-byte twox-128 hash of *data*."""
    return b"".join(
        xxhash.xxh64_intdigest(data, seed=seed).to_bytes(8, "little") for seed in (0, 1)
    )


def module_prefix(module: str) -> bytes:
    """Storage prefix selecting every key of *module* (e.g. ``"System"``)."""
    try:
        raw = module.encode("ascii")
    except UnicodeEncodeError as exc:
        raise ValueError(f"module name must be ASCII, got {module!r}") from exc
    return twox_128(raw)
