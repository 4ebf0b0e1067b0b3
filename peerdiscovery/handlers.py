"""Request handler layer.

Validates inbound commands, calls into :class:`~peerdiscovery.discovery.PeerDiscovery`
and turns the outcome into a :class:`QueryResponse`. This is the only code
that knows about command names; the transport binding in
:mod:`peerdiscovery.server` only moves queries in and responses out.

Commands:
  register    caller module registers itself as a source (name looked up remotely)
  remove      {name}              -> bool
  removeAll                       -> None
  exists      {name}              -> bool
  discover    {pubkey, options?}  -> peer | False
  list                            -> [name, ...]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from peerdiscovery.base import Found
from peerdiscovery.discovery import PeerDiscovery
from peerdiscovery.errors import (
    DuplicateSourceError,
    PeerDiscoveryError,
    RemoteCallError,
    ValidationError,
)
from peerdiscovery.rpc import ModuleCaller

logger = logging.getLogger(__name__)

PUBKEY_LENGTH = 32


@dataclass
class ActiveQuery:
    """One inbound request: who sent it and what they sent."""
    domain: str | None
    caller_input: Any = field(default_factory=dict)


@dataclass
class QueryResponse:
    """Outcome of a command. ``code`` classifies failures for the transport."""
    ok: bool
    data: Any = None
    error: str | None = None
    code: str = ""

    @classmethod
    def respond(cls, data: Any = None) -> QueryResponse:
        return cls(ok=True, data=data)

    @classmethod
    def reject(cls, error: str, code: str) -> QueryResponse:
        return cls(ok=False, error=error, code=code)


Handler = Callable[[ActiveQuery], Awaitable[Any]]

_ERROR_CODES: list[tuple[type[Exception], str]] = [
    (ValidationError, "validation"),
    (DuplicateSourceError, "duplicate"),
    (RemoteCallError, "remote"),
]


def _error_code(exc: PeerDiscoveryError) -> str:
    for exc_type, code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    return "internal"


def _input(query: ActiveQuery) -> dict[str, Any]:
    if query.caller_input is None:
        return {}
    if not isinstance(query.caller_input, dict):
        raise ValidationError("input must be an object")
    return query.caller_input


def _require_name(query: ActiveQuery) -> str:
    data = _input(query)
    if "name" not in data:
        raise ValidationError("missing name")
    name = data["name"]
    if not isinstance(name, str):
        raise ValidationError("name must be a string")
    return name


def coerce_pubkey(value: Any) -> bytes:
    """Accept raw bytes, a hex string or a JSON byte array; require 32 bytes."""
    if isinstance(value, str):
        try:
            value = bytes.fromhex(value)
        except ValueError:
            raise ValidationError("pubkey must be hex or bytes") from None
    elif isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value)
    elif isinstance(value, list):
        try:
            value = bytes(value)
        except (TypeError, ValueError):
            raise ValidationError("pubkey must be hex or bytes") from None
    else:
        raise ValidationError("pubkey must be hex or bytes")

    if len(value) != PUBKEY_LENGTH:
        raise ValidationError(f"pubkey must be {PUBKEY_LENGTH} bytes")
    return value


class DiscoveryModule:
    """Command dispatcher for the discovery module.

    Args:
        discovery: Orchestrator holding the source registry.
        caller:    RPC channel used to reach source modules.
    """

    def __init__(self, discovery: PeerDiscovery, caller: ModuleCaller) -> None:
        self.discovery = discovery
        self.caller = caller
        self._handlers: dict[str, Handler] = {}
        self.add_handler("register", self.handle_register_source)
        self.add_handler("remove", self.handle_remove_source)
        self.add_handler("removeAll", self.handle_remove_all_sources)
        self.add_handler("exists", self.handle_source_exists)
        self.add_handler("discover", self.handle_discover)
        self.add_handler("list", self.handle_list_sources)

    def add_handler(self, command: str, handler: Handler) -> None:
        self._handlers[command] = handler

    @property
    def commands(self) -> list[str]:
        return list(self._handlers)

    async def handle(self, command: str, query: ActiveQuery) -> QueryResponse:
        """Run *command* and never raise; failures become rejections."""
        handler = self._handlers.get(command)
        if handler is None:
            return QueryResponse.reject("no_route", "no_route")
        try:
            data = await handler(query)
        except PeerDiscoveryError as exc:
            logger.info("%s from %s rejected: %s", command, query.domain, exc)
            return QueryResponse.reject(str(exc), _error_code(exc))
        except Exception as exc:
            logger.exception("Handler %s failed", command)
            return QueryResponse.reject(str(exc) or type(exc).__name__, "internal")
        return QueryResponse.respond(data)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def handle_register_source(self, query: ActiveQuery) -> None:
        if not query.domain:
            raise ValidationError("missing caller domain")
        await self.discovery.register_remote(query.domain, self.caller)

    async def handle_remove_source(self, query: ActiveQuery) -> bool:
        return self.discovery.remove_source(_require_name(query))

    async def handle_remove_all_sources(self, query: ActiveQuery) -> None:
        self.discovery.remove_all_sources()

    async def handle_source_exists(self, query: ActiveQuery) -> bool:
        return self.discovery.source_exists(_require_name(query))

    async def handle_list_sources(self, query: ActiveQuery) -> list[str]:
        return self.discovery.registry.names()

    async def handle_discover(self, query: ActiveQuery) -> Any:
        data = _input(query)
        if "pubkey" not in data:
            raise ValidationError("missing pubkey")
        pubkey = coerce_pubkey(data["pubkey"])

        options = data.get("options")
        if options is None:
            options = {}
        elif not isinstance(options, dict):
            raise ValidationError("options must be an object")

        result = await self.discovery.discover(pubkey, options)
        return result.peer if isinstance(result, Found) else False
