"""JSON-RPC over HTTP transport."""

from __future__ import annotations

import itertools
import json
import logging
from typing import Any, Protocol

import aiohttp

from remote_ext._constants import USER_AGENT
from remote_ext.exceptions import RemoteExtConnectionError, RemoteExtProtocolError

_logger = logging.getLogger(__name__)


class RpcTransport(Protocol):
    """Structural transport interface used by the gateway.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpRpcTransport`) concrete.
    """

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        ...


class HttpRpcTransport:
    """JSON-RPC 2.0 client posting to a single node endpoint.

    Response bodies are read in full with no size cap; ``state_getPairs``
    results for a whole chain are unbounded.
    """

    def __init__(
        self,
        uri: str,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float | None = None,
    ) -> None:
        self._uri = uri
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._ids = itertools.count(1)

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        """Send one JSON-RPC call and return its ``result`` member.

        1. POST ``{"jsonrpc": "2.0", "id": n, "method": ..., "params": [...]}``
        2. Map transport failures and non-200 replies to connection errors
        3. Map non-JSON bodies, ``error`` members and missing ``result`` to
           protocol errors
        """
        body = json.dumps(
            {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []},
            separators=(",", ":"),
        )
        headers = {
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }

        _logger.debug("RPC %s -> %s", method, self._uri)

        try:
            async with self._http.post(self._uri, data=body, headers=headers, timeout=self._timeout) as resp:
                raw = await resp.read()
                if resp.status != 200:
                    raise RemoteExtConnectionError(
                        f"HTTP {resp.status} from {self._uri} for {method}: "
                        f"{raw[:200].decode('utf-8', errors='replace')}",
                        method=method,
                        status_code=resp.status,
                    )
        except RemoteExtConnectionError:
            raise
        except (aiohttp.ClientError, TimeoutError, OSError) as exc:
            raise RemoteExtConnectionError(
                f"{method} request to {self._uri} failed: {exc!r}",
                method=method,
            ) from exc

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RemoteExtProtocolError(
                f"Response from {method} is not valid UTF-8: {raw[:32]!r}",
                method=method,
            ) from exc

        try:
            reply = json.loads(text)
        except json.JSONDecodeError as exc:
            raise RemoteExtProtocolError(
                f"Invalid JSON from {method}: {text[:200]}",
                method=method,
            ) from exc

        if not isinstance(reply, dict):
            raise RemoteExtProtocolError(f"{method} reply is not a JSON object", method=method)

        error = reply.get("error")
        if error is not None:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message", "") if isinstance(error, dict) else str(error)
            raise RemoteExtProtocolError(
                f"{method} failed: code={code} message={message}",
                method=method,
                code=code if isinstance(code, int) else None,
            )

        if "result" not in reply:
            raise RemoteExtProtocolError(f"Missing 'result' field from {method}", method=method)

        return reply["result"]
