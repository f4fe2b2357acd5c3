"""Remote state scraping."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence

from remote_ext._hex import hex_display
from remote_ext.gateway import RpcGateway
from remote_ext.hashing import module_prefix
from remote_ext.models import KeyValuePair, KeyValueSnapshot, SnapshotReference

_logger = logging.getLogger(__name__)


class StateScraper:
    """Collect key/value pairs for a pinned block.

    Any failing ``state_getPairs`` call aborts the whole scrape; a
    truncated snapshot is never returned.
    """

    def __init__(self, gateway: RpcGateway, *, concurrent: bool = False) -> None:
        self._gateway = gateway
        self._concurrent = concurrent

    async def scrape(
        self,
        reference: SnapshotReference,
        modules: Sequence[str],
        inject: Iterable[KeyValuePair] = (),
    ) -> KeyValueSnapshot:
        """Scrape *modules* (everything when empty) and append *inject*."""
        if modules:
            pairs = await self._scrape_modules(reference, modules)
        else:
            _logger.info("Downloading data for all modules @ %s", reference)
            pairs = await self._gateway.fetch_pairs(b"", reference)

        # Injected pairs are never filtered and always come last.
        pairs.extend(inject)
        return pairs

    async def _scrape_modules(self, reference: SnapshotReference, modules: Sequence[str]) -> KeyValueSnapshot:
        prefixes = [module_prefix(module) for module in modules]

        if self._concurrent:
            results = await self._fetch_concurrently(reference, prefixes)
        else:
            results = [await self._gateway.fetch_pairs(p, reference) for p in prefixes]

        pairs: KeyValueSnapshot = []
        for module, prefix, module_pairs in zip(modules, prefixes, results, strict=True):
            _logger.info(
                "Downloaded data for module %s (count: %d / prefix: %s)",
                module,
                len(module_pairs),
                hex_display(prefix),
            )
            pairs.extend(module_pairs)
        return pairs

    async def _fetch_concurrently(
        self, reference: SnapshotReference, prefixes: Sequence[bytes]
    ) -> list[KeyValueSnapshot]:
        # The task group cancels the remaining fetches once one fails.
        try:
            async with asyncio.TaskGroup() as tg:
                tasks = [tg.create_task(self._gateway.fetch_pairs(p, reference)) for p in prefixes]
        except ExceptionGroup as group:
            raise group.exceptions[0]
        return [task.result() for task in tasks]
