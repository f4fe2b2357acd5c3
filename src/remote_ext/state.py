"""State sinks receiving the rebuilt key/value pairs."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol


class KeyValueSink(Protocol):
    """Anything accepting raw storage inserts.

    The builder only ever calls :meth:`insert`; no ordering, read-back
    or transactional behaviour is assumed.
    """

    def insert(self, key: bytes, value: bytes) -> None:
        ...


class InMemoryState:
    """Dict-backed sink used when the caller does not supply one.

    A later insert of the same key replaces the earlier value, so
    injected pairs override scraped ones.
    """

    def __init__(self) -> None:
        self._storage: dict[bytes, bytes] = {}

    def insert(self, key: bytes, value: bytes) -> None:
        self._storage[bytes(key)] = bytes(value)

    def get(self, key: bytes, default: bytes | None = None) -> bytes | None:
        return self._storage.get(key, default)

    def items(self) -> Iterator[tuple[bytes, bytes]]:
        return iter(self._storage.items())

    def keys_with_prefix(self, prefix: bytes) -> list[bytes]:
        return [key for key in self._storage if key.startswith(prefix)]

    def __contains__(self, key: object) -> bool:
        return key in self._storage

    def __len__(self) -> int:
        return len(self._storage)
