"""remote_ext - Rebuild a Substrate node's storage offline from its RPC interface."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("remote-ext")
except PackageNotFoundError:
    __version__ = "0+local"
from remote_ext._hex import hex_display, parse_hex
from remote_ext.builder import Builder, BuilderPhase, BuildResult, SnapshotSource
from remote_ext.cache import CacheMiss, CacheMissReason, CachePlanner, cache_identity
from remote_ext.config import BuilderConfig, CacheMode, CacheName
from remote_ext.exceptions import (
    RemoteExtCacheWriteError,
    RemoteExtConfigError,
    RemoteExtConnectionError,
    RemoteExtError,
    RemoteExtProtocolError,
    RemoteExtStateError,
)
from remote_ext.gateway import RpcGateway
from remote_ext.hashing import module_prefix, twox_128
from remote_ext.models import KeyValuePair, KeyValueSnapshot, RuntimeVersion, SnapshotReference
from remote_ext.scraper import StateScraper
from remote_ext.state import InMemoryState, KeyValueSink
from remote_ext.units import TokenFormat, format_balance

__all__ = [
    "__version__",
    "BuildResult",
    "Builder",
    "BuilderConfig",
    "BuilderPhase",
    "CacheMiss",
    "CacheMissReason",
    "CacheMode",
    "CacheName",
    "CachePlanner",
    "InMemoryState",
    "KeyValuePair",
    "KeyValueSink",
    "KeyValueSnapshot",
    "RemoteExtCacheWriteError",
    "RemoteExtConfigError",
    "RemoteExtConnectionError",
    "RemoteExtError",
    "RemoteExtProtocolError",
    "RemoteExtStateError",
    "RpcGateway",
    "RuntimeVersion",
    "SnapshotReference",
    "SnapshotSource",
    "StateScraper",
    "TokenFormat",
    "cache_identity",
    "format_balance",
    "hex_display",
    "module_prefix",
    "parse_hex",
    "twox_128",
]
