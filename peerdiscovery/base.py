"""Source interface and discovery result types.

Every discovery backend (a remote module, a DHT lookup, a static table, ...)
implements :class:`PeerSource` and is registered by name with the
:class:`~peerdiscovery.registry.SourceRegistry`.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

#: Opaque descriptor of a discovered endpoint, e.g. ``{"host": "1.2.3.4", "port": 443}``.
Peer = dict[str, Any]


@dataclass(frozen=True)
class Found:
    """A source located a peer for the requested key."""
    peer: Peer

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class NotFound:
    """No source located a peer."""

    def __bool__(self) -> bool:
        return False


NOT_FOUND = NotFound()

DiscoveryResult = Union[Found, NotFound]

#: Signature of a bare async capability: ``(pubkey, options) -> Peer | False``.
SourceFunction = Callable[[bytes, dict[str, Any]], Awaitable[Any]]


def to_result(value: Any) -> DiscoveryResult:
    """Normalise a raw source reply into a :data:`DiscoveryResult`.

    Only ``False`` and ``None`` mean "no result"; anything else, empty
    containers included, is passed through untouched as the peer descriptor.
    """
    if isinstance(value, (Found, NotFound)):
        return value
    if value is None or value is False:
        return NOT_FOUND
    return Found(value)


class PeerSource(abc.ABC):
    """Abstract interface for any discovery backend."""

    @abc.abstractmethod
    async def discover(self, pubkey: bytes, options: dict[str, Any]) -> DiscoveryResult:
        """Look up the peer advertising *pubkey*.

        Args:
            pubkey:  32-byte public key.
            options: Caller-supplied options, forwarded verbatim.

        Returns :class:`Found` with the peer descriptor, or :data:`NOT_FOUND`.
        """
        raise NotImplementedError


class FunctionSource(PeerSource):
    """Adapts a plain async callable to :class:`PeerSource`."""

    def __init__(self, func: SourceFunction) -> None:
        self._func = func

    async def discover(self, pubkey: bytes, options: dict[str, Any]) -> DiscoveryResult:
        return to_result(await self._func(pubkey, options))

    def __repr__(self) -> str:
        return f"FunctionSource({getattr(self._func, '__name__', self._func)!r})"
