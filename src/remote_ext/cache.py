"""On-disk snapshot cache.

Cache files hold the ordered pair list in a length-prefixed layout:

    u64 LE  pair count
    repeated:
        u64 LE  key length,   key bytes
        u64 LE  value length, value bytes

This is the bincode encoding of ``Vec<(Vec<u8>, Vec<u8>)>``, so files
written by older tooling load unchanged.

Concurrent builds writing the same identity are not coordinated; the
last rename wins.
"""

from __future__ import annotations

import contextlib
import logging
import os
import struct
import tempfile
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from remote_ext._constants import CACHE_DIR, CACHE_SUFFIX
from remote_ext.config import CacheName
from remote_ext.exceptions import RemoteExtCacheWriteError
from remote_ext.models import KeyValuePair, KeyValueSnapshot, SnapshotReference

_logger = logging.getLogger(__name__)

_U64 = struct.Struct("<Q")


class CacheMissReason(StrEnum):
    ABSENT = "absent"
    UNREADABLE = "unreadable"
    UNDECODABLE = "undecodable"


@dataclass(frozen=True, slots=True)
class CacheMiss:
    """No usable cached snapshot exists; the caller should scrape."""

    reason: CacheMissReason
    path: Path
    detail: str = ""

    def __str__(self) -> str:
        suffix = f": {self.detail}" if self.detail else ""
        return f"cache {self.reason} at {self.path}{suffix}"


class SnapshotDecodeError(ValueError):
    """Cache bytes do not form a valid pair list."""


# ------------------------------------------------------------------
# Encoding
# ------------------------------------------------------------------


def encode_snapshot(pairs: Sequence[KeyValuePair]) -> bytes:
    parts: list[bytes] = [_U64.pack(len(pairs))]
    for key, value in pairs:
        parts.append(_U64.pack(len(key)))
        parts.append(key)
        parts.append(_U64.pack(len(value)))
        parts.append(value)
    return b"".join(parts)


def decode_snapshot(data: bytes) -> KeyValueSnapshot:
    """Inverse of :func:`encode_snapshot`.

    Raises :class:`SnapshotDecodeError` on truncation or trailing bytes.
    """
    view = memoryview(data)
    offset = 0

    def read_u64() -> int:
        nonlocal offset
        if offset + _U64.size > len(view):
            raise SnapshotDecodeError(f"truncated length prefix at offset {offset}")
        (value,) = _U64.unpack_from(view, offset)
        offset += _U64.size
        return value

    def read_blob() -> bytes:
        nonlocal offset
        length = read_u64()
        end = offset + length
        if end > len(view):
            raise SnapshotDecodeError(f"blob of {length} bytes at offset {offset} exceeds file size {len(view)}")
        blob = bytes(view[offset:end])
        offset = end
        return blob

    count = read_u64()
    # Every pair needs at least two length prefixes.
    if count > (len(view) - offset) // (2 * _U64.size):
        raise SnapshotDecodeError(f"pair count {count} does not fit in {len(view)} bytes")

    pairs: KeyValueSnapshot = []
    for _ in range(count):
        key = read_blob()
        value = read_blob()
        pairs.append((key, value))

    if offset != len(view):
        raise SnapshotDecodeError(f"{len(view) - offset} trailing bytes after {count} pairs")
    return pairs


# ------------------------------------------------------------------
# Naming and load/store
# ------------------------------------------------------------------


def cache_identity(chain_id: str, reference: SnapshotReference, modules: Iterable[str]) -> str:
    """Deterministic cache file name for a scrape.

    Modules are sorted so that declaration order does not matter;
    repeated entries stay repeated.
    """
    return f"{chain_id},{reference.debug_form()},{','.join(sorted(modules))}{CACHE_SUFFIX}"


class CachePlanner:
    """Names, loads and stores snapshot cache files in one directory."""

    def __init__(self, directory: Path | str = CACHE_DIR) -> None:
        self._directory = Path(directory)

    def identity(self, chain_id: str, reference: SnapshotReference, modules: Iterable[str]) -> str:
        return cache_identity(chain_id, reference, modules)

    def resolve_name(
        self,
        cache_name: CacheName,
        chain_id: str,
        reference: SnapshotReference,
        modules: Iterable[str],
    ) -> str:
        if cache_name.name is not None:
            return cache_name.name
        return self.identity(chain_id, reference, modules)

    def path_for(self, identity: str) -> Path:
        return self._directory / identity

    def try_load(self, identity: str) -> KeyValueSnapshot | CacheMiss:
        """Load a cached snapshot, or explain why none is usable."""
        path = self.path_for(identity)
        _logger.info("Loading cached pairs from %s", path)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return CacheMiss(CacheMissReason.ABSENT, path)
        except OSError as exc:
            return CacheMiss(CacheMissReason.UNREADABLE, path, str(exc))

        try:
            return decode_snapshot(data)
        except SnapshotDecodeError as exc:
            return CacheMiss(CacheMissReason.UNDECODABLE, path, str(exc))

    def store(self, identity: str, pairs: Sequence[KeyValuePair]) -> Path:
        """Write *pairs* under *identity*, replacing any existing file.

        The data goes to a temporary sibling first and is renamed into
        place, so readers never observe a half-written file.

        Raises :class:`RemoteExtCacheWriteError` if the write fails.
        """
        path = self.path_for(identity)
        payload = encode_snapshot(pairs)
        _logger.info("Writing %d pairs to cache file %s", len(pairs), path)

        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=self._directory)
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            raise RemoteExtCacheWriteError(f"failed to write cache file {path}: {exc}", path=path) from exc
        return path
