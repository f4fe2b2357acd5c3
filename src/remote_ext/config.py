"""Builder configuration for remote_ext."""

from __future__ import annotations

import dataclasses
import os
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from remote_ext._constants import DEFAULT_URI
from remote_ext.exceptions import RemoteExtConfigError
from remote_ext.models import KeyValuePair, SnapshotReference


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


class CacheMode(StrEnum):
    """How the builder uses the on-disk snapshot cache."""

    #: Always scrape the node; never touch the disk.
    NONE = "none"
    #: Load the cache if it is there, else scrape and create it.
    USE_ELSE_CREATE = "use_else_create"
    #: Always scrape, then overwrite the cache.
    FORCE_UPDATE = "force_update"

    @classmethod
    def parse(cls, value: str | CacheMode) -> CacheMode:
        """Accept enum members and loose spellings like ``"use-else-create"``."""
        if isinstance(value, CacheMode):
            return value
        normalized = value.strip().lower().replace("-", "_")
        if normalized in {"no_cache", ""}:
            return cls.NONE
        try:
            return cls(normalized)
        except ValueError as exc:
            choices = ", ".join(m.value for m in cls)
            raise RemoteExtConfigError(f"invalid cache mode {value!r} (expected one of {choices})") from exc


class CacheName(BaseModel):
    """Cache file naming strategy.

    ``CacheName.auto()`` derives ``{chain},{hash},{modules}.bin``;
    ``CacheName.forced("file.bin")`` pins the file name.
    """

    model_config = ConfigDict(frozen=True)

    name: str | None = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("forced cache name must be non-empty")
        if "/" in value or "\\" in value:
            raise ValueError("forced cache name must be a bare file name")
        return value

    @classmethod
    def auto(cls) -> CacheName:
        return cls()

    @classmethod
    def forced(cls, name: str) -> CacheName:
        try:
            return cls(name=name)
        except ValidationError as exc:
            raise RemoteExtConfigError(f"invalid cache name {name!r}: {exc}") from exc

    @property
    def is_auto(self) -> bool:
        return self.name is None


@dataclasses.dataclass(frozen=True)
class BuilderConfig:
    """Snapshot builder configuration.

    Parameters
    ----------
    uri : str
        HTTP JSON-RPC endpoint of the node.
    at : SnapshotReference or None
        Block to scrape. ``None`` means the finalized head at build time.
    modules : tuple[str, ...]
        Module names to scrape, in declaration order. Empty scrapes everything.
    inject : tuple[KeyValuePair, ...]
        Pairs appended after the scraped data, never filtered.
    cache_mode : CacheMode
        Cache behaviour.
    cache_name : CacheName
        Cache file naming strategy.
    concurrent_fetches : bool
        Issue per-module ``state_getPairs`` calls concurrently.
    request_timeout : float or None
        Total per-request timeout in seconds. ``None`` disables it.
    """

    uri: str = DEFAULT_URI
    at: SnapshotReference | None = None
    modules: tuple[str, ...] = ()
    inject: tuple[KeyValuePair, ...] = ()
    cache_mode: CacheMode = CacheMode.NONE
    cache_name: CacheName = dataclasses.field(default_factory=CacheName.auto)
    concurrent_fetches: bool = False
    request_timeout: float | None = None

    @classmethod
    def from_env(cls, **overrides: Any) -> BuilderConfig:
        """Create configuration from ``REMOTE_EXT_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        uri = env.get("REMOTE_EXT_URI")
        if uri:
            config_kwargs["uri"] = uri

        at_raw = env.get("REMOTE_EXT_AT")
        if at_raw:
            config_kwargs["at"] = parse_reference(at_raw)

        modules_raw = env.get("REMOTE_EXT_MODULES")
        if modules_raw:
            config_kwargs["modules"] = tuple(m.strip() for m in modules_raw.split(",") if m.strip())

        mode_raw = env.get("REMOTE_EXT_CACHE_MODE")
        if mode_raw is not None:
            config_kwargs["cache_mode"] = CacheMode.parse(mode_raw)

        name_raw = env.get("REMOTE_EXT_CACHE_NAME")
        if name_raw:
            config_kwargs["cache_name"] = CacheName.forced(name_raw)

        if "concurrent_fetches" not in overrides:
            config_kwargs["concurrent_fetches"] = _env_bool(env.get("REMOTE_EXT_CONCURRENT_FETCHES"), False)

        timeout_env = env.get("REMOTE_EXT_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            try:
                config_kwargs["request_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise RemoteExtConfigError(f"invalid REMOTE_EXT_REQUEST_TIMEOUT {timeout_env!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)


def parse_reference(value: str | bytes | SnapshotReference) -> SnapshotReference:
    """Coerce user input into a :class:`SnapshotReference`.

    Raises :class:`RemoteExtConfigError` for malformed hashes.
    """
    if isinstance(value, SnapshotReference):
        return value
    try:
        return SnapshotReference(value=value)
    except ValidationError as exc:
        raise RemoteExtConfigError(f"invalid block hash {value!r}: {exc}") from exc
