"""Typed values exchanged with the node and the cache.

Storage keys and values are opaque ``bytes``. A snapshot is an ordered
list of ``(key, value)`` tuples; order carries no meaning for the sink
but is kept end to end so cache files are reproducible.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from remote_ext._constants import REFERENCE_LENGTH
from remote_ext._hex import hex_display, parse_hex

StorageKey = bytes
StorageValue = bytes
KeyValuePair = tuple[StorageKey, StorageValue]
KeyValueSnapshot = list[KeyValuePair]


def _coerce_hex(value: Any) -> Any:
    """Accept ``0x`` hex strings wherever bytes are expected."""
    if isinstance(value, str):
        return parse_hex(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise ValueError(f"expected hex string or bytes, got {type(value).__name__}")


HexBytes = Annotated[bytes, BeforeValidator(_coerce_hex)]

PAIRS_ADAPTER: TypeAdapter[list[tuple[HexBytes, HexBytes]]] = TypeAdapter(list[tuple[HexBytes, HexBytes]])


class SnapshotReference(BaseModel):
    """Block hash pinning the version of remote state being read.

    Parameters
    ----------
    value : bytes
        The 32-byte hash. Hex strings are accepted and decoded.
    """

    model_config = ConfigDict(frozen=True)

    value: HexBytes

    @field_validator("value")
    @classmethod
    def _check_length(cls, value: bytes) -> bytes:
        if len(value) != REFERENCE_LENGTH:
            raise ValueError(f"block hash must be {REFERENCE_LENGTH} bytes, got {len(value)}")
        return value

    @classmethod
    def from_hex(cls, text: str) -> SnapshotReference:
        """Parse a ``0x``-prefixed (or bare) 64-digit hex hash."""
        return cls(value=text)

    def hex(self) -> str:
        return hex_display(self.value)

    def debug_form(self) -> str:
        """Full hex rendering used in automatic cache file names."""
        return self.hex()

    def __str__(self) -> str:
        full = self.value.hex()
        return f"0x{full[:4]}…{full[-4:]}"


class RuntimeVersion(BaseModel):
    """Subset of ``state_getRuntimeVersion`` the tooling reports."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, extra="ignore")

    spec_name: str
    impl_name: str = ""
    spec_version: int
    impl_version: int = 0
    transaction_version: int = 0
