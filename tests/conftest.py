from __future__ import annotations

# pylint: disable=redefined-outer-name

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from remote_ext._hex import parse_hex
from remote_ext.exceptions import RemoteExtConnectionError
from remote_ext.hashing import twox_128

HEAD = bytes.fromhex("f9a4ce984129569f63edc01b1c13374779f9384f1befd39931ffdcc83acf63a7")
PARENT = bytes.fromhex("540922e96a8fcaf945ed23c6f09c3e189bd88504ec945cc2171deaebeaf2f37e")

SYSTEM = twox_128(b"System")
BALANCES = twox_128(b"Balances")
STAKING = twox_128(b"Staking")


def default_storage() -> dict[bytes, bytes]:
    return {
        SYSTEM + twox_128(b"Number"): (3098546).to_bytes(4, "little"),
        SYSTEM + twox_128(b"BlockHash") + (3098545).to_bytes(4, "little"): PARENT,
        BALANCES + twox_128(b"TotalIssuance"): (10**18).to_bytes(16, "little"),
        STAKING + twox_128(b"ValidatorCount"): (400).to_bytes(4, "little"),
        b":code": b"\x00asm-runtime",
    }


@dataclass
class FakeNode:
    """In-process stand-in for a node's JSON-RPC interface."""

    storage: dict[bytes, bytes] = field(default_factory=default_storage)
    head: bytes = HEAD
    chain: str = "Kusama"
    calls: list[tuple[str, list[Any]]] = field(default_factory=list)
    fail_methods: set[str] = field(default_factory=set)
    # Per-prefix artificial latency, used to scramble completion order.
    delays: dict[bytes, float] = field(default_factory=dict)
    fail_prefixes: set[bytes] = field(default_factory=set)
    # Prefixes whose state_getPairs call ran to completion.
    completed: list[bytes] = field(default_factory=list)

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        params = params or []
        self.calls.append((method, params))

        if method in self.fail_methods:
            raise RemoteExtConnectionError(f"{method} unreachable", method=method)

        if method == "chain_getFinalizedHead":
            return f"0x{self.head.hex()}"

        if method == "system_chain":
            return self.chain

        if method == "state_getPairs":
            prefix = parse_hex(params[0])
            assert len(params) == 2
            if prefix in self.fail_prefixes:
                raise RemoteExtConnectionError(f"{method} unreachable for {params[0]}", method=method)
            delay = self.delays.get(prefix)
            if delay:
                await asyncio.sleep(delay)
            self.completed.append(prefix)
            return [[f"0x{k.hex()}", f"0x{v.hex()}"] for k, v in self.storage.items() if k.startswith(prefix)]

        if method == "state_getRuntimeVersion":
            return {
                "specName": "kusama",
                "implName": "parity-kusama",
                "specVersion": 9430,
                "implVersion": 0,
                "transactionVersion": 23,
                "apis": [],
            }

        raise AssertionError(f"Unexpected method in fake node: {method}")


@pytest.fixture
def node() -> FakeNode:
    return FakeNode()
