#!/usr/bin/env python3
"""Scrape a node's storage and report what was collected.

Builds a snapshot through :class:`remote_ext.Builder`, optionally through
the on-disk cache, and prints a short summary.

Usage
-----
::

    python scripts/scrape_state.py --uri http://localhost:9933 --module System
    python scripts/scrape_state.py --module Staking --cache-mode use-else-create

Options::

    --uri URI              Node HTTP endpoint (default: $REMOTE_EXT_URI or localhost:9933)
    --at HASH              Block hash to scrape (default: finalized head)
    --module NAME          Only scrape this module (repeatable)
    --cache-mode MODE      none | use-else-create | force-update
    --cache-name FILE      Fixed cache file name
    --inject KEY=VALUE     Extra hex pair appended to the snapshot (repeatable)
    --network NAME         Token preset for the issuance line (kusama, polkadot, substrate)
    --json                 Output as machine-readable JSON
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import aiohttp

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from remote_ext import Builder, BuilderConfig, RemoteExtError, RpcGateway, TokenFormat, format_balance  # noqa: E402
from remote_ext._constants import READ_BUFSIZE  # noqa: E402
from remote_ext._hex import parse_hex  # noqa: E402
from remote_ext._transport import HttpRpcTransport  # noqa: E402
from remote_ext.hashing import module_prefix, twox_128  # noqa: E402
from remote_ext.state import InMemoryState  # noqa: E402

# Balances.TotalIssuance
_TOTAL_ISSUANCE_KEY = twox_128(b"Balances") + twox_128(b"TotalIssuance")


def _parse_inject(raw: list[str]) -> list[tuple[bytes, bytes]]:
    pairs: list[tuple[bytes, bytes]] = []
    for item in raw:
        key, sep, value = item.partition("=")
        if not sep:
            raise SystemExit(f"--inject expects KEY=VALUE, got {item!r}")
        pairs.append((parse_hex(key), parse_hex(value)))
    return pairs


def _issuance(value: bytes | None) -> int | None:
    # u128, SCALE little-endian
    if value is None or len(value) != 16:
        return None
    return int.from_bytes(value, "little")


async def main() -> int:
    parser = argparse.ArgumentParser(description="Scrape node storage into a local snapshot.")
    parser.add_argument("--uri", help="Node HTTP JSON-RPC endpoint")
    parser.add_argument("--at", help="Block hash (default: finalized head)")
    parser.add_argument("--module", action="append", default=[], help="Module to scrape (repeatable)")
    parser.add_argument("--cache-mode", help="none | use-else-create | force-update")
    parser.add_argument("--cache-name", help="Fixed cache file name")
    parser.add_argument("--inject", action="append", default=[], help="Extra KEY=VALUE hex pair")
    parser.add_argument("--network", default="kusama", help="Token preset for balance output")
    parser.add_argument("--concurrent", action="store_true", help="Fetch modules concurrently")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    token = TokenFormat.for_network(args.network)
    async with aiohttp.ClientSession(read_bufsize=READ_BUFSIZE) as http:
        return await _run(args, token, http)


async def _run(args: argparse.Namespace, token: TokenFormat, http: aiohttp.ClientSession) -> int:
    builder = Builder(BuilderConfig.from_env(), session=http)
    if args.uri:
        builder.uri(args.uri)
    if args.at:
        builder.at(args.at)
    if args.module:
        builder.modules(*args.module)
    if args.cache_mode:
        builder.cache_mode(args.cache_mode)
    if args.cache_name:
        builder.cache_name(args.cache_name)
    if args.inject:
        builder.inject(_parse_inject(args.inject))
    if args.concurrent:
        builder.concurrent_fetches()

    try:
        result = await builder.build()
    except RemoteExtError as exc:
        print(f"build failed: {exc}", file=sys.stderr)
        return 1

    gateway = RpcGateway(HttpRpcTransport(builder.config.uri, http, timeout=builder.config.request_timeout))
    try:
        runtime = await gateway.runtime_version(result.reference)
    except RemoteExtError as exc:
        logging.getLogger(__name__).warning("Runtime version unavailable: %s", exc)
        runtime = None

    issuance = _issuance(dict(result.snapshot).get(_TOTAL_ISSUANCE_KEY))
    keys_per_module: dict[str, int] = {}
    if isinstance(result.sink, InMemoryState):
        for module in builder.config.modules:
            keys_per_module[module] = len(result.sink.keys_with_prefix(module_prefix(module)))
    summary: dict[str, Any] = {
        "uri": builder.config.uri,
        "chain": result.chain_id,
        "runtime": f"{runtime.spec_name}-{runtime.spec_version}" if runtime else None,
        "at": result.reference.hex(),
        "source": str(result.source),
        "pairs": len(result.snapshot),
        "keys_per_module": keys_per_module or None,
        "cache_path": str(result.cache_path) if result.cache_path else None,
        "total_issuance": format_balance(issuance, token) if issuance is not None else None,
        "warnings": result.warnings,
    }

    if args.json_mode:
        print(json.dumps(summary, indent=2, ensure_ascii=False))
    else:
        for key, value in summary.items():
            print(f"  {key:<15}: {value}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
