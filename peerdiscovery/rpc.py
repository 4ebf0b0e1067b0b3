"""RPC channel to other modules.

A module is addressed by an opaque identifier (its *domain*). The
:class:`ModuleCaller` interface hides how a call reaches it; the bundled
:class:`HttpModuleCaller` treats the domain as a base URL::

    POST {domain}/rpc/{method}   {"data": ...}
    ->   {"ok": true, "data": ...} | {"ok": false, "error": "..."}
"""

from __future__ import annotations

import abc
import logging
from typing import Any

import httpx

from peerdiscovery.errors import RemoteCallError

logger = logging.getLogger(__name__)


class ModuleCaller(abc.ABC):
    """Abstract request/response channel to another module."""

    @abc.abstractmethod
    async def call(self, module: str, method: str, data: Any = None) -> Any:
        """Invoke *method* on *module* and return its reply.

        Raises:
            RemoteCallError: the call failed, timed out or was rejected.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release any resources held by the channel."""


def encode_payload(value: Any) -> Any:
    """Make *value* JSON-safe; byte strings become lowercase hex."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, dict):
        return {k: encode_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_payload(v) for v in value]
    return value


class HttpModuleCaller(ModuleCaller):
    """Calls modules exposed over HTTP with the JSON envelope above."""

    def __init__(
        self,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def call(self, module: str, method: str, data: Any = None) -> Any:
        url = f"{module.rstrip('/')}/rpc/{method}"
        try:
            resp = await self._client.post(url, json={"data": encode_payload(data)})
        except httpx.TimeoutException as exc:
            raise RemoteCallError(module, method, "timed out") from exc
        except httpx.HTTPError as exc:
            raise RemoteCallError(module, method, str(exc) or type(exc).__name__) from exc

        try:
            body = resp.json()
        except ValueError as exc:
            raise RemoteCallError(
                module, method, f"invalid response (HTTP {resp.status_code})"
            ) from exc

        if not isinstance(body, dict):
            raise RemoteCallError(module, method, "invalid response envelope")
        if resp.is_error or not body.get("ok", False):
            error = body.get("error") or f"HTTP {resp.status_code}"
            raise RemoteCallError(module, method, str(error))

        logger.debug("rpc %s.%s -> HTTP %d", module, method, resp.status_code)
        return body.get("data")

    async def aclose(self) -> None:
        await self._client.aclose()
