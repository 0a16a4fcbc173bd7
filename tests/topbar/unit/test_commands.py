"""Unit tests for the command surface and its dispatcher."""

import asyncio

import pytest

from topbar.core.commands import UnknownCommand
from topbar.constants import TOPIC_REFRESH

from ..helpers import WORKSPACES_JSON, FakeSurface, settle


@pytest.fixture
def surface(registry):
    surface = FakeSurface("monitor1")
    registry.register(surface)
    return surface


class TestQueries:
    """Tests for the workspace and window queries."""

    @pytest.mark.asyncio
    async def test_get_spaces_payload(self, commands):
        payload = await commands.dispatch("get-spaces")
        assert payload == [{"workspace": "1"}, {"workspace": "2"}, {"workspace": "3"}]

    @pytest.mark.asyncio
    async def test_get_active_space_payload(self, commands):
        assert await commands.dispatch("get-active-space") == [{"workspace": "2"}]

    @pytest.mark.asyncio
    async def test_get_active_window_payload(self, commands):
        payload = await commands.dispatch("get-active-window")
        assert payload == [{"window-id": "4242", "window-title": "README.md", "app-name": "Code"}]

    @pytest.mark.asyncio
    async def test_failure_is_returned_and_pushed(self, commands, scripted_runner, surface):
        scripted_runner.script(
            "aerospace", "list-workspaces", "--all", "--json",
            exit_code=1, stderr="Can't connect to AeroSpace server",
        )

        payload = await commands.dispatch("get-spaces")
        await settle()

        assert payload["error"]["kind"] == "ProcessError"
        assert payload["error"]["exit_code"] == 1
        assert len(surface.errors) == 1
        assert surface.errors[0].message.startswith("get-spaces: Process exited with code 1")

    @pytest.mark.asyncio
    async def test_missing_aerospace_rearmed_after_success(self, commands, resolver, surface):
        resolver.missing.add("aerospace")
        await commands.get_spaces()
        await commands.get_active_space()
        await settle()
        assert len(surface.errors) == 1

        resolver.missing.clear()
        assert (await commands.get_spaces()).ok

        resolver.missing.add("aerospace")
        await commands.get_spaces()
        await settle()
        assert len(surface.errors) == 2

    @pytest.mark.asyncio
    async def test_polled_failure_pushed_once_until_recovery(self, commands, scripted_runner, surface):
        scripted_runner.script("aerospace", "list-workspaces", "--all", "--json", exit_code=1, stderr="down")
        for _ in range(3):
            assert not (await commands.get_spaces()).ok
        await settle()
        assert len(surface.errors) == 1

        scripted_runner.script("aerospace", "list-workspaces", "--all", "--json", stdout=WORKSPACES_JSON)
        assert (await commands.get_spaces()).ok

        scripted_runner.script("aerospace", "list-workspaces", "--all", "--json", exit_code=1, stderr="down")
        await commands.get_spaces()
        await settle()
        assert len(surface.errors) == 2


class TestSwitchSpace:
    """Tests for switch-space and its follow-up refreshes."""

    @pytest.mark.asyncio
    async def test_success_refreshes_twice(self, commands, scripted_runner, surface):
        payload = await commands.dispatch("switch-space", {"workspace": "3"})

        assert payload == {"success": True}
        assert scripted_runner.calls_for("aerospace", "workspace") == [["/usr/bin/aerospace", "workspace", "3"]]
        assert [s.topic for s in surface.refreshes] == [TOPIC_REFRESH]

        await asyncio.sleep(0.06)
        assert len(surface.refreshes) == 2

    @pytest.mark.asyncio
    async def test_failure_still_refreshes(self, commands, scripted_runner, surface):
        scripted_runner.script("aerospace", "workspace", exit_code=1, stderr="Workspace 'x' doesn't exist")

        payload = await commands.dispatch("switch-space", {"workspace": "x"})
        await asyncio.sleep(0.06)

        assert payload["error"]["kind"] == "ProcessError"
        assert len(surface.refreshes) == 2
        assert surface.errors[0].message.startswith("switch-space:")

    @pytest.mark.asyncio
    async def test_repeated_failure_pushed_each_time(self, commands, scripted_runner, surface):
        scripted_runner.script("aerospace", "workspace", exit_code=1, stderr="Workspace 'x' doesn't exist")

        await commands.switch_space("x")
        await commands.switch_space("x")
        await settle()

        assert len(surface.errors) == 2

    @pytest.mark.asyncio
    async def test_numeric_workspace_param(self, commands, scripted_runner):
        await commands.dispatch("switch-space", {"workspace": 4})
        assert scripted_runner.calls_for("aerospace", "workspace")[0][-1] == "4"

    @pytest.mark.asyncio
    async def test_empty_id_rejected(self, commands, surface):
        with pytest.raises(ValueError):
            await commands.switch_space("")
        assert surface.refreshes == []

    @pytest.mark.asyncio
    async def test_missing_param(self, commands):
        with pytest.raises(KeyError):
            await commands.dispatch("switch-space", {})


class TestBestEffortCommands:
    """Tests for media, power, network and display commands."""

    @pytest.mark.asyncio
    async def test_spotify_track(self, commands):
        payload = await commands.dispatch("get-spotify-track")
        assert payload == {"artist": "Daft Punk", "title": "One More Time", "isPlaying": True}

    @pytest.mark.asyncio
    async def test_focus_spotify(self, commands, scripted_runner):
        assert await commands.dispatch("focus-spotify") == {"success": True}

    @pytest.mark.asyncio
    async def test_focus_spotify_failure_payload(self, commands, scripted_runner, surface):
        scripted_runner.script("osascript", "-e", exit_code=1, stderr="Spotify got an error")

        payload = await commands.dispatch("focus-spotify")
        await settle()

        assert payload["error"]["kind"] == "ScriptError"
        assert surface.errors == []

    @pytest.mark.asyncio
    async def test_battery(self, commands):
        assert await commands.dispatch("get-battery-status") == {"level": 85, "charging": False}

    @pytest.mark.asyncio
    async def test_wifi(self, commands):
        assert await commands.dispatch("get-wifi-status") == {"status": "high"}

    @pytest.mark.asyncio
    async def test_refresh_data_counts_surfaces(self, commands, registry):
        registry.register(FakeSurface("monitor1"))
        registry.register(FakeSurface("monitor2"))

        assert await commands.dispatch("refresh-data") == {"surfaces": 2}

    @pytest.mark.asyncio
    async def test_list_displays(self, commands):
        assert await commands.dispatch("list-displays") == [
            {"monitor-id": 1, "monitor-name": "Built-in Retina Display"}
        ]

    @pytest.mark.asyncio
    async def test_list_displays_falls_back_to_one(self, commands, scripted_runner):
        scripted_runner.script("aerospace", "list-monitors", "--json", exit_code=1, stderr="boom")

        displays = await commands.list_displays()

        assert [d.slug for d in displays] == ["monitor1"]


class TestDispatch:
    def test_command_names(self, commands):
        assert "get-spaces" in commands.commands
        assert commands.commands == sorted(commands.commands)

    @pytest.mark.asyncio
    async def test_unknown_command(self, commands):
        with pytest.raises(UnknownCommand) as exc_info:
            await commands.dispatch("get-weather")
        assert str(exc_info.value) == "Unknown command: get-weather"
