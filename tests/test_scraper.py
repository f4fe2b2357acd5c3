from __future__ import annotations

import asyncio

import pytest

from remote_ext.exceptions import RemoteExtConnectionError
from remote_ext.gateway import RpcGateway
from remote_ext.models import SnapshotReference
from remote_ext.scraper import StateScraper

from conftest import BALANCES, HEAD, STAKING, SYSTEM, FakeNode

REF = SnapshotReference(value=HEAD)


def _prefixes(node: FakeNode) -> list[str]:
    return [params[0] for method, params in node.calls if method == "state_getPairs"]


@pytest.mark.asyncio
async def test_empty_filter_issues_one_unfiltered_fetch(node: FakeNode) -> None:
    pairs = await StateScraper(RpcGateway(node)).scrape(REF, [])

    assert _prefixes(node) == ["0x"]
    assert pairs == list(node.storage.items())


@pytest.mark.asyncio
async def test_modules_are_fetched_and_concatenated_in_declaration_order(node: FakeNode) -> None:
    pairs = await StateScraper(RpcGateway(node)).scrape(REF, ["Staking", "System"])

    assert _prefixes(node) == [f"0x{STAKING.hex()}", f"0x{SYSTEM.hex()}"]
    assert pairs[0][0].startswith(STAKING)
    assert all(key.startswith(SYSTEM) for key, _ in pairs[1:])
    assert len(pairs) == 3


@pytest.mark.asyncio
async def test_duplicate_modules_fetch_twice_without_dedup(node: FakeNode) -> None:
    pairs = await StateScraper(RpcGateway(node)).scrape(REF, ["Balances", "Balances"])

    assert len(_prefixes(node)) == 2
    assert len(pairs) == 2
    assert pairs[0] == pairs[1]
    assert pairs[0][0].startswith(BALANCES)


@pytest.mark.asyncio
async def test_injected_pairs_are_appended_last_and_unfiltered(node: FakeNode) -> None:
    inject = [(b"\x01", b"\x02"), (SYSTEM + b"override", b"x")]
    pairs = await StateScraper(RpcGateway(node)).scrape(REF, ["Staking"], inject)

    assert pairs[-2:] == inject
    assert pairs[0][0].startswith(STAKING)


@pytest.mark.asyncio
async def test_filtered_scrape_is_subset_with_module_prefix(node: FakeNode) -> None:
    scraper = StateScraper(RpcGateway(node))
    everything = await scraper.scrape(REF, [])
    system = await scraper.scrape(REF, ["System"])

    assert set(system) < set(everything)
    assert all(key.startswith(SYSTEM) for key, _ in system)


@pytest.mark.asyncio
async def test_fetch_failure_aborts_the_scrape(node: FakeNode) -> None:
    node.fail_methods.add("state_getPairs")
    with pytest.raises(RemoteExtConnectionError):
        await StateScraper(RpcGateway(node)).scrape(REF, ["System", "Balances"], [(b"\x01", b"\x02")])


@pytest.mark.asyncio
async def test_concurrent_fetches_keep_declaration_order(node: FakeNode) -> None:
    # The first module finishes last.
    node.delays = {SYSTEM: 0.05, BALANCES: 0.0}
    sequential = await StateScraper(RpcGateway(FakeNode())).scrape(REF, ["System", "Balances"])
    concurrent = await StateScraper(RpcGateway(node), concurrent=True).scrape(REF, ["System", "Balances"])

    assert concurrent == sequential
    assert concurrent[0][0].startswith(SYSTEM)
    assert concurrent[-1][0].startswith(BALANCES)


@pytest.mark.asyncio
async def test_concurrent_failure_cancels_pending_fetches(node: FakeNode) -> None:
    node.fail_prefixes.add(SYSTEM)
    node.delays = {BALANCES: 0.05}

    with pytest.raises(RemoteExtConnectionError, match="unreachable"):
        await StateScraper(RpcGateway(node), concurrent=True).scrape(REF, ["System", "Balances"])

    # Give a leaked fetch time to finish if it had not been cancelled.
    await asyncio.sleep(0.1)
    assert node.completed == []
