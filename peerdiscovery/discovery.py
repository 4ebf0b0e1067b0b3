"""Discovery orchestrator: asks registered sources for a peer.

Two fan-out strategies are available:

  sequential   sources are awaited one by one in registration order and the
               first hit wins; later sources are never called.
  race         every source is started at once and the first hit to arrive
               wins; hits landing in the same scheduling step are ranked by
               registration order.

Whatever the strategy, a source that raises or exceeds ``source_timeout`` is
logged and counted as a miss.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from peerdiscovery.adapter import RemoteSource, resolve_source_name
from peerdiscovery.base import (
    NOT_FOUND,
    DiscoveryResult,
    FunctionSource,
    PeerSource,
    SourceFunction,
    to_result,
)
from peerdiscovery.registry import SourceRegistry
from peerdiscovery.rpc import ModuleCaller

logger = logging.getLogger(__name__)

STRATEGIES = ("sequential", "race")


class PeerDiscovery:
    """Owns a :class:`SourceRegistry` and resolves public keys against it.

    Args:
        registry:       Registry to use; a private one is created if omitted.
        strategy:       ``"sequential"`` or ``"race"`` (see module docstring).
        source_timeout: Seconds allowed per source call; ``None`` waits forever.
    """

    def __init__(
        self,
        registry: SourceRegistry | None = None,
        *,
        strategy: str = "sequential",
        source_timeout: float | None = 10.0,
    ) -> None:
        if strategy not in STRATEGIES:
            raise ValueError(
                f"Unknown strategy '{strategy}'. Choose from: {list(STRATEGIES)}"
            )
        self.registry = registry if registry is not None else SourceRegistry()
        self.strategy = strategy
        self.source_timeout = source_timeout

    # ------------------------------------------------------------------
    # Registry passthrough
    # ------------------------------------------------------------------

    def register_source(self, name: str, source: PeerSource | SourceFunction) -> None:
        """Register a :class:`PeerSource` or a bare async ``(pubkey, options)`` callable."""
        if not isinstance(source, PeerSource):
            if not callable(source):
                raise TypeError(f"Source {name} is neither a PeerSource nor callable")
            source = FunctionSource(source)
        self.registry.register_source(name, source)

    async def register_remote(self, module: str, caller: ModuleCaller) -> str:
        """Register the source module *module* under the name it reports.

        The name lookup happens before the registry is touched; its failure
        propagates unchanged.

        Returns the registered name.
        """
        name = await resolve_source_name(caller, module)
        self.registry.register_source(name, RemoteSource(module, caller))
        return name

    def source_exists(self, name: str) -> bool:
        return self.registry.source_exists(name)

    def remove_source(self, name: str) -> bool:
        return self.registry.remove_source(name)

    def remove_all_sources(self) -> None:
        self.registry.remove_all_sources()

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def discover(
        self,
        pubkey: bytes,
        options: dict[str, Any] | None = None,
    ) -> DiscoveryResult:
        """Return the first :class:`~peerdiscovery.base.Found` any source produces.

        The source set is the registry snapshot taken when the call starts.
        An empty registry yields :data:`NOT_FOUND` immediately.
        """
        sources = self.registry.snapshot()
        if not sources:
            return NOT_FOUND
        if options is None:
            options = {}

        if self.strategy == "race":
            return await self._race(sources, pubkey, options)

        for name, source in sources:
            result = await self._invoke(name, source, pubkey, options)
            if result:
                return result
        return NOT_FOUND

    async def _race(
        self,
        sources: list[tuple[str, PeerSource]],
        pubkey: bytes,
        options: dict[str, Any],
    ) -> DiscoveryResult:
        tasks = [
            asyncio.ensure_future(self._invoke(name, source, pubkey, options))
            for name, source in sources
        ]
        rank = {task: index for index, task in enumerate(tasks)}
        pending: set[asyncio.Future] = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                for task in sorted(done, key=rank.__getitem__):
                    result = task.result()
                    if result:
                        return result
            return NOT_FOUND
        finally:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    async def _invoke(
        self,
        name: str,
        source: PeerSource,
        pubkey: bytes,
        options: dict[str, Any],
    ) -> DiscoveryResult:
        try:
            if self.source_timeout is None:
                result = await source.discover(pubkey, options)
            else:
                result = await asyncio.wait_for(
                    source.discover(pubkey, options), timeout=self.source_timeout
                )
        except asyncio.TimeoutError:
            logger.warning("Source %s timed out after %.1fs", name, self.source_timeout)
            return NOT_FOUND
        except Exception as exc:
            logger.warning("Source %s raised an error: %s", name, exc, exc_info=True)
            return NOT_FOUND
        result = to_result(result)
        logger.debug("Source %s -> %s", name, "found" if result else "no result")
        return result
