"""In-memory, name-keyed registry of discovery sources."""

from __future__ import annotations

import logging
import threading

from peerdiscovery.base import PeerSource
from peerdiscovery.errors import DuplicateSourceError

logger = logging.getLogger(__name__)


class SourceRegistry:
    """Maps source names to :class:`PeerSource` instances.

    Names are unique and matched exactly. Iteration follows registration
    order. All mutations happen under one lock so concurrent handlers never
    observe a half-applied change; the lock is never held across an await.
    """

    def __init__(self) -> None:
        self._sources: dict[str, PeerSource] = {}
        self._lock = threading.Lock()

    def register_source(self, name: str, source: PeerSource) -> None:
        """Add *source* under *name*.

        Raises:
            DuplicateSourceError: *name* is already registered. The existing
                entry is left untouched.
        """
        with self._lock:
            if name in self._sources:
                raise DuplicateSourceError(name)
            self._sources[name] = source
        logger.info("Source registered: %s", name)

    def source_exists(self, name: str) -> bool:
        with self._lock:
            return name in self._sources

    def remove_source(self, name: str) -> bool:
        """Remove *name*; return ``True`` if something was removed."""
        with self._lock:
            removed = self._sources.pop(name, None) is not None
        if removed:
            logger.info("Source removed: %s", name)
        return removed

    def remove_all_sources(self) -> None:
        with self._lock:
            count = len(self._sources)
            self._sources.clear()
        logger.info("All sources removed (%d)", count)

    def get(self, name: str) -> PeerSource | None:
        with self._lock:
            return self._sources.get(name)

    def names(self) -> list[str]:
        """Registered names in registration order."""
        with self._lock:
            return list(self._sources)

    def snapshot(self) -> list[tuple[str, PeerSource]]:
        """Copy of ``(name, source)`` pairs in registration order."""
        with self._lock:
            return list(self._sources.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sources)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._sources
