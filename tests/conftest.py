"""pytest configuration for peer discovery tests."""

from __future__ import annotations

from typing import Any

import pytest

from peerdiscovery.errors import RemoteCallError
from peerdiscovery.rpc import ModuleCaller


# Configure asyncio mode for pytest-asyncio
def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


class FakeCaller(ModuleCaller):
    """In-process stand-in for the RPC channel.

    ``modules[domain][method]`` is either a value to return, an exception to
    raise, or an async callable receiving the call data.
    """

    def __init__(self) -> None:
        self.modules: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self.closed = False

    def add_module(self, domain: str, **methods: Any) -> None:
        self.modules[domain] = methods

    async def call(self, module: str, method: str, data: Any = None) -> Any:
        self.calls.append((module, method, data))
        methods = self.modules.get(module)
        if methods is None or method not in methods:
            raise RemoteCallError(module, method, "no_route")
        handler = methods[method]
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return await handler(data)
        return handler

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def caller():
    return FakeCaller()


@pytest.fixture
def pubkey():
    return bytes(range(32))
