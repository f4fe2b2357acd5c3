"""Typed node calls used by the snapshot builder.

Endpoints:
  - chain_getFinalizedHead
  - system_chain
  - state_getPairs (unsafe RPC; the node must expose it)
  - state_getRuntimeVersion
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from remote_ext._constants import (
    METHOD_CHAIN,
    METHOD_FINALIZED_HEAD,
    METHOD_GET_PAIRS,
    METHOD_RUNTIME_VERSION,
)
from remote_ext._hex import hex_display
from remote_ext._transport import RpcTransport
from remote_ext.exceptions import RemoteExtProtocolError
from remote_ext.models import PAIRS_ADAPTER, KeyValueSnapshot, RuntimeVersion, SnapshotReference

_logger = logging.getLogger(__name__)


def _invalid(method: str, result: Any, exc: Exception) -> RemoteExtProtocolError:
    preview = repr(result)[:128]
    return RemoteExtProtocolError(f"{method} returned an unexpected result {preview}: {exc}", method=method)


class RpcGateway:
    """Thin async wrapper turning raw JSON-RPC results into typed values."""

    def __init__(self, transport: RpcTransport) -> None:
        self._transport = transport

    async def resolve_finalized_reference(self) -> SnapshotReference:
        """Hash of the node's latest finalized block."""
        result = await self._transport.request(METHOD_FINALIZED_HEAD)
        try:
            return SnapshotReference(value=result)
        except ValidationError as exc:
            raise _invalid(METHOD_FINALIZED_HEAD, result, exc) from exc

    async def resolve_chain_id(self) -> str:
        """Display name of the chain (e.g. ``"Kusama"``)."""
        result = await self._transport.request(METHOD_CHAIN)
        if not isinstance(result, str):
            raise _invalid(METHOD_CHAIN, result, TypeError("expected a string"))
        return result

    async def fetch_pairs(self, prefix: bytes, at: SnapshotReference) -> KeyValueSnapshot:
        """Every ``(key, value)`` under *prefix* at block *at*.

        An empty prefix matches the whole state.
        """
        result = await self._transport.request(METHOD_GET_PAIRS, [hex_display(prefix), at.hex()])
        try:
            pairs = PAIRS_ADAPTER.validate_python(result)
        except ValidationError as exc:
            raise _invalid(METHOD_GET_PAIRS, result, exc) from exc
        _logger.debug("%s %s returned %d pairs", METHOD_GET_PAIRS, hex_display(prefix), len(pairs))
        return pairs

    async def runtime_version(self, at: SnapshotReference | None = None) -> RuntimeVersion:
        params = [at.hex()] if at is not None else []
        result = await self._transport.request(METHOD_RUNTIME_VERSION, params)
        try:
            return RuntimeVersion.model_validate(result)
        except ValidationError as exc:
            raise _invalid(METHOD_RUNTIME_VERSION, result, exc) from exc
