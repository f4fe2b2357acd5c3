"""Snapshot builder: resolve, scrape or load, then hand pairs to a sink."""

from __future__ import annotations

import contextlib
import dataclasses
import logging
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

import aiohttp

from remote_ext._constants import READ_BUFSIZE
from remote_ext._hex import hex_display
from remote_ext._transport import HttpRpcTransport, RpcTransport
from remote_ext.cache import CacheMiss, CachePlanner
from remote_ext.config import BuilderConfig, CacheMode, CacheName, parse_reference
from remote_ext.exceptions import RemoteExtCacheWriteError, RemoteExtConfigError, RemoteExtStateError
from remote_ext.gateway import RpcGateway
from remote_ext.models import KeyValuePair, KeyValueSnapshot, SnapshotReference
from remote_ext.scraper import StateScraper
from remote_ext.state import InMemoryState, KeyValueSink

_logger = logging.getLogger(__name__)


class BuilderPhase(StrEnum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    BUILDING = "building"
    BUILT = "built"
    FAILED = "failed"


class SnapshotSource(StrEnum):
    REMOTE = "remote"
    CACHE = "cache"


@dataclass(slots=True)
class BuildResult:
    """Outcome of :meth:`Builder.build`.

    ``warnings`` lists recoverable cache problems (misses, failed
    writes) that did not stop the build.
    """

    sink: KeyValueSink
    snapshot: KeyValueSnapshot
    reference: SnapshotReference
    chain_id: str
    source: SnapshotSource
    cache_path: Path | None = None
    warnings: list[str] = field(default_factory=list)


class Builder:
    """Rebuild a node's storage locally, optionally through a disk cache.

    Usage::

        result = await (
            Builder()
            .uri("http://localhost:9933")
            .module("System")
            .cache_mode(CacheMode.USE_ELSE_CREATE)
            .build()
        )
        state = result.sink

    A builder runs exactly one build; create a new one for the next.
    """

    def __init__(
        self,
        config: BuilderConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: RpcTransport | None = None,
    ) -> None:
        self._config = config if config is not None else BuilderConfig()
        self._phase = BuilderPhase.UNCONFIGURED if config is None else BuilderPhase.CONFIGURED
        self._http_session = session
        self._transport = transport
        self._planner = CachePlanner()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def config(self) -> BuilderConfig:
        return self._config

    @property
    def phase(self) -> BuilderPhase:
        return self._phase

    def _configure(self, **changes: object) -> Builder:
        if self._phase not in (BuilderPhase.UNCONFIGURED, BuilderPhase.CONFIGURED):
            raise RemoteExtConfigError(f"cannot configure builder in phase {self._phase}")
        self._config = dataclasses.replace(self._config, **changes)  # type: ignore[arg-type]
        self._phase = BuilderPhase.CONFIGURED
        return self

    def at(self, reference: SnapshotReference | str | bytes) -> Builder:
        """Scrape the chain at the given block hash.

        If not set, the latest finalized block is used.
        """
        return self._configure(at=parse_reference(reference))

    def uri(self, uri: str) -> Builder:
        return self._configure(uri=uri)

    def module(self, module: str) -> Builder:
        """Scrape only this module.

        If used multiple times, all of the given modules are scraped, else the entire state.
        """
        return self._configure(modules=(*self._config.modules, module))

    def modules(self, *modules: str) -> Builder:
        return self._configure(modules=(*self._config.modules, *modules))

    def inject(self, pairs: Iterable[KeyValuePair]) -> Builder:
        """Append manual key/value pairs after the scraped data."""
        extra = tuple((bytes(k), bytes(v)) for k, v in pairs)
        return self._configure(inject=(*self._config.inject, *extra))

    def cache_mode(self, mode: CacheMode | str) -> Builder:
        return self._configure(cache_mode=CacheMode.parse(mode))

    def cache_name(self, name: CacheName | str) -> Builder:
        if isinstance(name, str):
            name = CacheName.forced(name)
        return self._configure(cache_name=name)

    def concurrent_fetches(self, enabled: bool = True) -> Builder:
        return self._configure(concurrent_fetches=enabled)

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    async def build(self, sink: KeyValueSink | None = None) -> BuildResult:
        """Resolve the block, obtain the pairs and insert them into *sink*.

        Network and protocol errors abort the build. Cache problems are
        logged and reported in :attr:`BuildResult.warnings`.
        """
        if self._phase in (BuilderPhase.BUILDING, BuilderPhase.BUILT, BuilderPhase.FAILED):
            raise RemoteExtStateError(f"builder already used (phase {self._phase}); create a new one")
        self._phase = BuilderPhase.BUILDING

        try:
            result = await self._pre_build(sink if sink is not None else InMemoryState())

            _logger.info("Injecting a total of %d keys", len(result.snapshot))
            for key, value in result.snapshot:
                _logger.debug("Injecting %s -> %s", hex_display(key, max_bytes=64), hex_display(value, max_bytes=64))
                result.sink.insert(key, value)
        except BaseException:
            self._phase = BuilderPhase.FAILED
            raise

        self._phase = BuilderPhase.BUILT
        return result

    @contextlib.asynccontextmanager
    async def _connect(self) -> AsyncIterator[RpcTransport]:
        if self._transport is not None:
            yield self._transport
            return

        own_session = self._http_session is None
        http_session = self._http_session or aiohttp.ClientSession(read_bufsize=READ_BUFSIZE)
        try:
            yield HttpRpcTransport(self._config.uri, http_session, timeout=self._config.request_timeout)
        finally:
            if own_session:
                await http_session.close()

    async def _pre_build(self, sink: KeyValueSink) -> BuildResult:
        config = self._config
        async with self._connect() as transport:
            gateway = RpcGateway(transport)

            if config.at is not None:
                reference = config.at
            else:
                reference = await gateway.resolve_finalized_reference()
                _logger.info("Using finalized head %s", reference.hex())

            chain_id = await gateway.resolve_chain_id()
            _logger.info("Connected to %s [%s] @ %s", config.uri, chain_id, reference)

            scraper = StateScraper(gateway, concurrent=config.concurrent_fetches)
            result = BuildResult(
                sink=sink,
                snapshot=[],
                reference=reference,
                chain_id=chain_id,
                source=SnapshotSource.REMOTE,
            )

            if config.cache_mode is CacheMode.NONE:
                result.snapshot = await self._scrape(scraper, reference)
                return result

            identity = self._planner.resolve_name(config.cache_name, chain_id, reference, config.modules)

            if config.cache_mode is CacheMode.USE_ELSE_CREATE:
                loaded = self._planner.try_load(identity)
                if not isinstance(loaded, CacheMiss):
                    _logger.info("Loaded %d pairs from cache %s", len(loaded), self._planner.path_for(identity))
                    result.snapshot = loaded
                    result.source = SnapshotSource.CACHE
                    result.cache_path = self._planner.path_for(identity)
                    return result
                _logger.warning("Failed to load cache: %s", loaded)
                result.warnings.append(str(loaded))

            result.snapshot = await self._scrape(scraper, reference)
            try:
                result.cache_path = self._planner.store(identity, result.snapshot)
            except RemoteExtCacheWriteError as exc:
                _logger.warning("Keeping scraped snapshot without cache: %s", exc)
                result.warnings.append(str(exc))
            return result

    async def _scrape(self, scraper: StateScraper, reference: SnapshotReference) -> KeyValueSnapshot:
        _logger.info("Scraping keypairs from remote node %s @ %s", self._config.uri, reference)
        return await scraper.scrape(reference, self._config.modules, self._config.inject)
