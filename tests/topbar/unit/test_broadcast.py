"""Unit tests for the surface registry and broadcast fan-out."""

import logging

import pytest

from topbar.core.broadcast import BroadcastFanout, SurfaceClosed, SurfaceRegistry
from topbar.models import ErrorNotice, RefreshSignal

from ..helpers import FakeSurface


class TestSurfaceRegistry:
    """Tests for SurfaceRegistry."""

    def test_register_and_snapshot_order(self, registry):
        a, b = FakeSurface("a"), FakeSurface("b")
        registry.register(a)
        registry.register(b)

        assert registry.snapshot() == [a, b]
        assert "a" in registry
        assert len(registry) == 2

    def test_register_replaces_same_id(self, registry):
        old, new = FakeSurface("monitor1"), FakeSurface("monitor1")
        registry.register(old)
        registry.register(new)

        assert registry.snapshot() == [new]

    def test_unregister_only_matching_handle(self, registry):
        current = FakeSurface("monitor1")
        registry.register(current)

        assert registry.unregister("monitor1", FakeSurface("monitor1")) is None
        assert registry.unregister("monitor1", current) is current
        assert len(registry) == 0

    def test_live_excludes_destroyed(self, registry):
        live, dead = FakeSurface("a"), FakeSurface("b", destroyed=True)
        registry.register(live)
        registry.register(dead)

        assert registry.live() == [live]


class TestBroadcastFanout:
    """Tests for BroadcastFanout delivery."""

    def test_no_surfaces(self, fanout):
        assert fanout.broadcast_refresh() == 0
        assert fanout.refreshes_sent == 1

    def test_single_surface(self, registry, fanout):
        surface = FakeSurface("monitor1")
        registry.register(surface)

        signal = RefreshSignal()
        assert fanout.broadcast_refresh(signal) == 1
        assert surface.refreshes == [signal]

    def test_every_surface_gets_exactly_one_signal(self, registry, fanout):
        surfaces = [FakeSurface(f"monitor{i}") for i in range(1, 5)]
        for surface in surfaces:
            registry.register(surface)

        assert fanout.broadcast_refresh() == 4
        assert all(len(s.refreshes) == 1 for s in surfaces)

    def test_destroyed_after_registration_is_skipped(self, registry, fanout, caplog):
        alive, doomed = FakeSurface("monitor1"), FakeSurface("monitor2")
        registry.register(alive)
        registry.register(doomed)
        doomed.destroy()

        with caplog.at_level(logging.WARNING, logger="topbar.core.broadcast"):
            delivered = fanout.broadcast_refresh()

        assert delivered == 1
        assert doomed.refreshes == []
        assert "monitor2" not in registry
        assert "Skipped destroyed surface monitor2" in caplog.text

    def test_surface_closed_during_delivery(self, registry, fanout):
        closing = FakeSurface("monitor1", fail_with=SurfaceClosed("monitor1"))
        other = FakeSurface("monitor2")
        registry.register(closing)
        registry.register(other)

        assert fanout.broadcast_refresh() == 1
        assert "monitor1" not in registry
        assert len(other.refreshes) == 1

    def test_unexpected_delivery_error_does_not_stop_broadcast(self, registry, fanout):
        broken = FakeSurface("monitor1", fail_with=RuntimeError("boom"))
        other = FakeSurface("monitor2")
        registry.register(broken)
        registry.register(other)

        assert fanout.broadcast_refresh() == 1
        assert "monitor1" in registry
        assert len(other.refreshes) == 1

    @pytest.mark.parametrize("count", [0, 1, 3])
    def test_all_destroyed_never_raises(self, count):
        registry = SurfaceRegistry()
        fanout = BroadcastFanout(registry)
        for i in range(count):
            surface = FakeSurface(f"s{i}")
            registry.register(surface)
            surface.destroy()

        assert fanout.broadcast_refresh() == 0
        assert fanout.broadcast_error(ErrorNotice("x")) == 0

    def test_error_notice_delivery(self, registry, fanout):
        surface = FakeSurface("monitor1")
        registry.register(surface)
        notice = ErrorNotice("get-spaces: Process exited with code 1: boom")

        assert fanout.broadcast_error(notice) == 1
        assert surface.errors == [notice]
        assert fanout.errors_sent == 1
