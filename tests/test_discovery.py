"""Tests for the PeerDiscovery orchestrator."""

from __future__ import annotations

import asyncio

import pytest

from peerdiscovery.adapter import RemoteSource
from peerdiscovery.base import NOT_FOUND, Found, FunctionSource, NotFound, PeerSource, to_result
from peerdiscovery.discovery import PeerDiscovery
from peerdiscovery.errors import DuplicateSourceError, RemoteCallError
from peerdiscovery.registry import SourceRegistry


async def never_found(pubkey, options):
    return False


async def always_raises(pubkey, options):
    raise RuntimeError("backend exploded")


def peer_source(peer, delay: float = 0.0):
    async def _discover(pubkey, options):
        if delay:
            await asyncio.sleep(delay)
        return peer
    return _discover


class RecordingSource(PeerSource):
    def __init__(self, result=NOT_FOUND) -> None:
        self.result = result
        self.calls: list[tuple[bytes, dict]] = []

    async def discover(self, pubkey, options):
        self.calls.append((pubkey, options))
        return self.result


class TestToResult:
    def test_false_and_none_are_not_found(self):
        assert to_result(False) is NOT_FOUND
        assert to_result(None) is NOT_FOUND

    def test_empty_containers_are_peers(self):
        assert to_result({}) == Found({})
        assert to_result([]) == Found([])

    def test_peer_passes_through(self):
        peer = {"host": "1.2.3.4", "port": 443}
        assert to_result(peer) == Found(peer)

    def test_results_are_unchanged(self):
        found = Found({"host": "h"})
        assert to_result(found) is found
        assert to_result(NOT_FOUND) is NOT_FOUND

    def test_truthiness(self):
        assert bool(Found({"host": "h"})) is True
        assert bool(NotFound()) is False


class TestConstruction:
    def test_unknown_strategy_raises(self):
        with pytest.raises(ValueError, match="Unknown strategy"):
            PeerDiscovery(strategy="fastest")

    def test_injected_registry_is_used(self):
        registry = SourceRegistry()
        discovery = PeerDiscovery(registry)
        discovery.register_source("a", never_found)
        assert registry.source_exists("a") is True

    def test_instances_are_isolated(self):
        one, two = PeerDiscovery(), PeerDiscovery()
        one.register_source("a", never_found)
        assert two.source_exists("a") is False

    def test_callable_is_wrapped(self):
        discovery = PeerDiscovery()
        discovery.register_source("a", never_found)
        assert isinstance(discovery.registry.get("a"), FunctionSource)

    def test_non_callable_rejected(self):
        discovery = PeerDiscovery()
        with pytest.raises(TypeError):
            discovery.register_source("a", "not a source")

    def test_duplicate_via_orchestrator(self):
        discovery = PeerDiscovery()
        discovery.register_source("a", never_found)
        with pytest.raises(DuplicateSourceError):
            discovery.register_source("a", always_raises)


@pytest.mark.parametrize("strategy", ["sequential", "race"])
class TestDiscover:
    @pytest.mark.asyncio
    async def test_empty_registry_not_found(self, strategy, pubkey):
        discovery = PeerDiscovery(strategy=strategy)
        assert await discovery.discover(pubkey, {}) is NOT_FOUND

    @pytest.mark.asyncio
    async def test_second_source_found(self, strategy, pubkey):
        discovery = PeerDiscovery(strategy=strategy)
        discovery.register_source("A", never_found)
        discovery.register_source("B", peer_source({"addr": "1.2.3.4"}))
        result = await discovery.discover(pubkey, {})
        assert result == Found({"addr": "1.2.3.4"})

    @pytest.mark.asyncio
    async def test_raising_source_is_not_found(self, strategy, pubkey):
        discovery = PeerDiscovery(strategy=strategy)
        discovery.register_source("C", always_raises)
        assert await discovery.discover(pubkey, {}) is NOT_FOUND

    @pytest.mark.asyncio
    async def test_raising_source_does_not_block_others(self, strategy, pubkey):
        discovery = PeerDiscovery(strategy=strategy)
        discovery.register_source("C", always_raises)
        discovery.register_source("B", peer_source({"addr": "5.6.7.8"}))
        assert await discovery.discover(pubkey, {}) == Found({"addr": "5.6.7.8"})

    @pytest.mark.asyncio
    async def test_all_not_found(self, strategy, pubkey):
        discovery = PeerDiscovery(strategy=strategy)
        discovery.register_source("A", never_found)
        discovery.register_source("B", never_found)
        assert await discovery.discover(pubkey) is NOT_FOUND

    @pytest.mark.asyncio
    async def test_empty_reply_wins_over_later_source(self, strategy, pubkey):
        discovery = PeerDiscovery(strategy=strategy)
        discovery.register_source("empty", peer_source({}))
        discovery.register_source("later", peer_source({"addr": "later"}, delay=0.05))
        assert await discovery.discover(pubkey, {}) == Found({})

    @pytest.mark.asyncio
    async def test_tie_broken_by_registration_order(self, strategy, pubkey):
        discovery = PeerDiscovery(strategy=strategy)
        discovery.register_source("first", peer_source({"addr": "first"}))
        discovery.register_source("second", peer_source({"addr": "second"}))
        assert await discovery.discover(pubkey, {}) == Found({"addr": "first"})

    @pytest.mark.asyncio
    async def test_options_forwarded_verbatim(self, strategy, pubkey):
        discovery = PeerDiscovery(strategy=strategy)
        source = RecordingSource()
        discovery.register_source("rec", source)
        options = {"region": "eu", "nested": {"k": [1, 2]}}
        await discovery.discover(pubkey, options)
        assert source.calls == [(pubkey, options)]

    @pytest.mark.asyncio
    async def test_missing_options_become_empty_dict(self, strategy, pubkey):
        discovery = PeerDiscovery(strategy=strategy)
        source = RecordingSource()
        discovery.register_source("rec", source)
        await discovery.discover(pubkey)
        assert source.calls == [(pubkey, {})]

    @pytest.mark.asyncio
    async def test_timeout_counts_as_not_found(self, strategy, pubkey):
        discovery = PeerDiscovery(strategy=strategy, source_timeout=0.05)
        discovery.register_source("slow", peer_source({"addr": "slow"}, delay=5))
        discovery.register_source("fast", peer_source({"addr": "fast"}))
        assert await discovery.discover(pubkey, {}) == Found({"addr": "fast"})


class TestSequential:
    @pytest.mark.asyncio
    async def test_stops_at_first_hit(self, pubkey):
        discovery = PeerDiscovery(strategy="sequential")
        first = RecordingSource(Found({"addr": "x"}))
        second = RecordingSource(Found({"addr": "y"}))
        discovery.register_source("first", first)
        discovery.register_source("second", second)
        assert await discovery.discover(pubkey, {}) == Found({"addr": "x"})
        assert second.calls == []

    @pytest.mark.asyncio
    async def test_registration_order_beats_latency(self, pubkey):
        discovery = PeerDiscovery(strategy="sequential")
        discovery.register_source("slow", peer_source({"addr": "slow"}, delay=0.05))
        discovery.register_source("fast", peer_source({"addr": "fast"}))
        assert await discovery.discover(pubkey, {}) == Found({"addr": "slow"})


class TestRace:
    @pytest.mark.asyncio
    async def test_fastest_hit_wins(self, pubkey):
        discovery = PeerDiscovery(strategy="race")
        discovery.register_source("slow", peer_source({"addr": "slow"}, delay=0.5))
        discovery.register_source("fast", peer_source({"addr": "fast"}))
        assert await discovery.discover(pubkey, {}) == Found({"addr": "fast"})

    @pytest.mark.asyncio
    async def test_losers_are_cancelled(self, pubkey):
        cancelled = asyncio.Event()

        async def hangs(pubkey, options):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        discovery = PeerDiscovery(strategy="race", source_timeout=None)
        discovery.register_source("hangs", hangs)
        discovery.register_source("fast", peer_source({"addr": "fast"}))
        assert await discovery.discover(pubkey, {}) == Found({"addr": "fast"})
        assert cancelled.is_set()


class TestSnapshotSemantics:
    @pytest.mark.asyncio
    async def test_registration_during_discover_not_seen(self, pubkey):
        discovery = PeerDiscovery()

        async def registers_late(pubkey, options):
            discovery.register_source("late", peer_source({"addr": "late"}))
            return False

        discovery.register_source("early", registers_late)
        assert await discovery.discover(pubkey, {}) is NOT_FOUND
        assert await discovery.discover(pubkey, {}) == Found({"addr": "late"})

    @pytest.mark.asyncio
    async def test_removal_during_discover_keeps_snapshot(self, pubkey):
        discovery = PeerDiscovery()

        async def removes_next(pubkey, options):
            discovery.remove_source("next")
            return False

        discovery.register_source("first", removes_next)
        discovery.register_source("next", peer_source({"addr": "next"}))
        assert await discovery.discover(pubkey, {}) == Found({"addr": "next"})
        assert discovery.source_exists("next") is False


class TestRegisterRemote:
    @pytest.mark.asyncio
    async def test_registers_under_reported_name(self, caller):
        caller.add_module("https://dht.example", name="dht")
        discovery = PeerDiscovery()
        name = await discovery.register_remote("https://dht.example", caller)
        assert name == "dht"
        source = discovery.registry.get("dht")
        assert isinstance(source, RemoteSource)
        assert source.module == "https://dht.example"

    @pytest.mark.asyncio
    async def test_name_failure_propagates_and_registry_unchanged(self, caller):
        caller.add_module("https://broken.example", name=RemoteCallError("https://broken.example", "name", "boom"))
        discovery = PeerDiscovery()
        with pytest.raises(RemoteCallError, match="boom"):
            await discovery.register_remote("https://broken.example", caller)
        assert discovery.registry.names() == []

    @pytest.mark.asyncio
    async def test_duplicate_remote_rejected(self, caller):
        caller.add_module("https://one.example", name="dht")
        caller.add_module("https://two.example", name="dht")
        discovery = PeerDiscovery()
        await discovery.register_remote("https://one.example", caller)
        with pytest.raises(DuplicateSourceError):
            await discovery.register_remote("https://two.example", caller)
        assert discovery.registry.get("dht").module == "https://one.example"
