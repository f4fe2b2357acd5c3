"""Custom exception hierarchy for remote_ext."""

from __future__ import annotations

from pathlib import Path


class RemoteExtError(Exception):
    """Base exception for all remote_ext errors."""


class RemoteExtConfigError(RemoteExtError):
    """Invalid or missing configuration."""


class RemoteExtStateError(RemoteExtError):
    """Builder used out of order (e.g. built twice)."""


class RemoteExtConnectionError(RemoteExtError):
    """Node unreachable or HTTP-level failure.

    Always fatal for a build: no snapshot is produced.
    """

    def __init__(
        self,
        message: str,
        *,
        method: str = "",
        status_code: int | None = None,
    ) -> None:
        self.method = method
        self.status_code = status_code
        super().__init__(message)


class RemoteExtProtocolError(RemoteExtError):
    """RPC response has an unexpected shape or carries a JSON-RPC error."""

    def __init__(
        self,
        message: str,
        *,
        method: str = "",
        code: int | None = None,
    ) -> None:
        self.method = method
        self.code = code
        super().__init__(message)


class RemoteExtCacheWriteError(RemoteExtError):
    """Snapshot could not be written to the cache file.

    Recoverable: the builder reports it and keeps the scraped snapshot.
    """

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)
