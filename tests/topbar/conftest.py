"""Pytest configuration and fixtures for topbar tests."""

import pytest

from topbar.adapters import (
    ActiveWindowAdapter,
    ActiveWorkspaceAdapter,
    AerospaceClient,
    BatteryAdapter,
    SpotifyAdapter,
    WifiAdapter,
    WorkspaceListAdapter,
)
from topbar.adapters.displays import DisplayAdapter
from topbar.adapters.media import TRACK_SCRIPT
from topbar.config import BarConfig, IntervalConfig, PowerConfig
from topbar.core.broadcast import BroadcastFanout, SurfaceRegistry
from topbar.core.commands import CommandSurface, SourceSet
from topbar.core.error_channel import ErrorChannel
from topbar.core.scheduler import RefreshScheduler

from .helpers import (
    FOCUSED_WINDOW_JSON,
    FOCUSED_WORKSPACE_JSON,
    MONITORS_JSON,
    PING_OUTPUT,
    PMSET_OUTPUT,
    WORKSPACES_JSON,
    FakeResolver,
    FakeRunner,
    RecordingRenderer,
)


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def scripted_runner(runner):
    """Runner with healthy responses for every source."""
    runner.script("aerospace", "list-workspaces", "--all", "--json", stdout=WORKSPACES_JSON)
    runner.script("aerospace", "list-workspaces", "--focused", "--json", stdout=FOCUSED_WORKSPACE_JSON)
    runner.script("aerospace", "list-windows", "--focused", "--json", stdout=FOCUSED_WINDOW_JSON)
    runner.script("aerospace", "list-monitors", "--json", stdout=MONITORS_JSON)
    runner.script("aerospace", "workspace")
    runner.script("osascript", "-e", TRACK_SCRIPT, stdout='{"artist":"Daft Punk","title":"One More Time","isPlaying":true}')
    runner.script("osascript", "-e")
    runner.script("pmset", "-g", "batt", stdout=PMSET_OUTPUT)
    runner.script("route", "-n", "get", "default", stdout="   route to: default\ngateway: 192.168.1.1\n")
    runner.script("ping", stdout=PING_OUTPUT)
    runner.script("airport", "-I", exit_code=1, stderr="airport: not available")
    return runner


@pytest.fixture
def intervals():
    """Short intervals so timer tests finish quickly."""
    return IntervalConfig(
        workspace=0.05,
        media=0.05,
        power=0.05,
        network=0.05,
        settle_delay=0.02,
        catch_up_delay=0.03,
    )


@pytest.fixture
def bar_config(tmp_path, intervals):
    return BarConfig(
        socket_path=tmp_path / "topbar.sock",
        intervals=intervals,
        power=PowerConfig(backend="pmset"),
    )


@pytest.fixture
def sources(scripted_runner, resolver, bar_config):
    client = AerospaceClient(scripted_runner, resolver)
    return SourceSet(
        aerospace=client,
        workspaces=WorkspaceListAdapter(client),
        active_workspace=ActiveWorkspaceAdapter(client),
        active_window=ActiveWindowAdapter(client),
        media=SpotifyAdapter(scripted_runner, resolver),
        power=BatteryAdapter(scripted_runner, resolver, bar_config.power, platform="darwin"),
        network=WifiAdapter(scripted_runner, resolver, bar_config.network, platform="darwin"),
        displays=DisplayAdapter(client),
    )


@pytest.fixture
def registry():
    return SurfaceRegistry()


@pytest.fixture
def fanout(registry):
    return BroadcastFanout(registry)


@pytest.fixture
def scheduler(fanout, intervals):
    return RefreshScheduler(fanout, intervals)


@pytest.fixture
def error_channel(fanout):
    return ErrorChannel(fanout)


@pytest.fixture
def commands(sources, scheduler, error_channel):
    return CommandSurface(sources, scheduler, error_channel)


@pytest.fixture
def renderer():
    return RecordingRenderer()


