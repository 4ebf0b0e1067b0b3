"""peerdiscovery: resolve a public key to a network peer via pluggable sources.

Quickstart::

    from peerdiscovery import PeerDiscovery

    discovery = PeerDiscovery()
    discovery.register_source("static", my_async_lookup)
    result = await discovery.discover(pubkey)   # Found(peer) or NOT_FOUND
"""

from __future__ import annotations

__version__ = "1.0.0"

from peerdiscovery.base import (
    NOT_FOUND,
    DiscoveryResult,
    Found,
    FunctionSource,
    NotFound,
    Peer,
    PeerSource,
)
from peerdiscovery.discovery import PeerDiscovery
from peerdiscovery.errors import (
    DuplicateSourceError,
    PeerDiscoveryError,
    RemoteCallError,
    ValidationError,
)
from peerdiscovery.registry import SourceRegistry

__all__ = [
    "NOT_FOUND",
    "DiscoveryResult",
    "DuplicateSourceError",
    "Found",
    "FunctionSource",
    "NotFound",
    "Peer",
    "PeerDiscovery",
    "PeerDiscoveryError",
    "PeerSource",
    "RemoteCallError",
    "SourceRegistry",
    "ValidationError",
]
