"""Adapter turning another module into a :class:`PeerSource`."""

from __future__ import annotations

import logging
from typing import Any

from peerdiscovery.base import NOT_FOUND, DiscoveryResult, PeerSource, to_result
from peerdiscovery.errors import RemoteCallError, ValidationError
from peerdiscovery.rpc import ModuleCaller

logger = logging.getLogger(__name__)


class RemoteSource(PeerSource):
    """Forwards lookups to the ``discover`` method of a remote module.

    A failed remote call is logged and reported as :data:`NOT_FOUND`, so one
    broken module cannot abort discovery across the other sources. A
    successful reply is trusted and passed through as the peer descriptor.
    """

    def __init__(self, module: str, caller: ModuleCaller) -> None:
        self.module = module
        self._caller = caller

    async def discover(self, pubkey: bytes, options: dict[str, Any]) -> DiscoveryResult:
        try:
            ret = await self._caller.call(
                self.module, "discover", {"pubkey": pubkey, "options": options}
            )
        except RemoteCallError as exc:
            logger.warning("Source module %s failed: %s", self.module, exc)
            return NOT_FOUND
        return to_result(ret)

    def __repr__(self) -> str:
        return f"RemoteSource({self.module!r})"


async def resolve_source_name(caller: ModuleCaller, module: str) -> str:
    """Ask *module* for its source name.

    Raises:
        RemoteCallError: the ``name`` call failed; registration cannot proceed.
        ValidationError: the module answered with something other than a
            non-empty string.
    """
    name = await caller.call(module, "name")
    if not isinstance(name, str) or not name:
        raise ValidationError(f"Module {module} returned an invalid source name")
    return name
