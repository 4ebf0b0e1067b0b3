"""Error taxonomy for the peer discovery module."""

from __future__ import annotations


class PeerDiscoveryError(Exception):
    """Base class for every error this package raises on purpose."""


class ValidationError(PeerDiscoveryError):
    """A request was malformed (missing field, wrong length, wrong type)."""


class DuplicateSourceError(PeerDiscoveryError):
    """A source with the same name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Source {name} already exists")
        self.name = name


class RemoteCallError(PeerDiscoveryError):
    """A call to another module failed, was rejected, or timed out."""

    def __init__(self, module: str, method: str, reason: str) -> None:
        super().__init__(f"{module}.{method}: {reason}")
        self.module = module
        self.method = method
        self.reason = reason
