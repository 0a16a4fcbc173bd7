"""Integration tests for the control socket."""

import asyncio

import pytest
import pytest_asyncio

from topbar.daemon import TopBarDaemon, refresh_running_daemon
from topbar.daemon_client import DaemonClient, DaemonError
from topbar.ipc_server import INVALID_PARAMS, METHOD_NOT_FOUND, SURFACE_NOT_FOUND

from ..helpers import RecordingRenderer, wait_until


@pytest_asyncio.fixture
async def daemon(bar_config, scripted_runner, sources):
    daemon = TopBarDaemon(
        bar_config,
        runner=scripted_runner,
        renderer=RecordingRenderer(),
        sources=sources,
    )
    await daemon.initialize()
    yield daemon
    await daemon.shutdown()


@pytest_asyncio.fixture
async def client(daemon, bar_config):
    client = DaemonClient(bar_config.socket_path, timeout=2.0)
    yield client
    await client.close()


@pytest.mark.integration
class TestControlSocket:
    """Tests for JSON-RPC requests over the Unix socket."""

    @pytest.mark.asyncio
    async def test_socket_permissions(self, daemon, bar_config):
        assert bar_config.socket_path.stat().st_mode & 0o777 == 0o600

    @pytest.mark.asyncio
    async def test_get_spaces(self, client):
        result = await client.call("get-spaces")
        assert result == [{"workspace": "1"}, {"workspace": "2"}, {"workspace": "3"}]

    @pytest.mark.asyncio
    async def test_switch_space(self, client, scripted_runner):
        assert await client.call("switch-space", {"workspace": "1"}) == {"success": True}
        assert scripted_runner.calls_for("aerospace", "workspace")

    @pytest.mark.asyncio
    async def test_unknown_method(self, client):
        with pytest.raises(DaemonError) as exc_info:
            await client.call("get-weather")
        assert exc_info.value.code == METHOD_NOT_FOUND

    @pytest.mark.asyncio
    async def test_missing_parameter(self, client):
        with pytest.raises(DaemonError) as exc_info:
            await client.call("switch-space", {})
        assert exc_info.value.code == INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_unknown_surface(self, client):
        with pytest.raises(DaemonError) as exc_info:
            await client.call("retry", {"surface": "monitor9"})
        assert exc_info.value.code == SURFACE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_retry_all(self, client):
        assert await client.call("retry") == {"surfaces": ["monitor1"]}

    @pytest.mark.asyncio
    async def test_status(self, client):
        status = await client.status()

        assert status["status"] == "running"
        assert status["surfaces"] == ["monitor1"]
        assert "get-spaces" in status["commands"]

    @pytest.mark.asyncio
    async def test_refresh(self, client):
        assert await client.refresh() == 1


@pytest.mark.integration
class TestSubscribe:
    """Tests for remote subscribers receiving broadcasts."""

    @pytest.mark.asyncio
    async def test_refresh_notification(self, daemon, client):
        notifications = client.subscribe()
        first = asyncio.ensure_future(anext(notifications))
        await wait_until(lambda: len(daemon.registry) == 2)

        daemon.commands.refresh_data()
        message = await asyncio.wait_for(first, timeout=1.0)

        assert message == {"jsonrpc": "2.0", "method": "refresh-data", "params": {"topic": "refresh-data"}}
        await notifications.aclose()

    @pytest.mark.asyncio
    async def test_error_notification(self, daemon, client, scripted_runner):
        notifications = client.subscribe()
        first = asyncio.ensure_future(anext(notifications))
        await wait_until(lambda: len(daemon.registry) == 2)
        scripted_runner.script("aerospace", "list-workspaces", "--all", "--json", exit_code=1, stderr="down")

        await daemon.commands.get_spaces()
        message = await asyncio.wait_for(first, timeout=1.0)

        assert message["method"] == "error"
        assert message["params"]["message"] == "get-spaces: Process exited with code 1: down"
        await notifications.aclose()

    @pytest.mark.asyncio
    async def test_disconnect_unregisters(self, daemon, client):
        notifications = client.subscribe()
        first = asyncio.ensure_future(anext(notifications))
        await wait_until(lambda: len(daemon.registry) == 2)

        first.cancel()
        await client.close()

        await wait_until(lambda: len(daemon.registry) == 1)


@pytest.mark.integration
class TestCatchUp:
    """Tests for refreshing an already-running daemon."""

    @pytest.mark.asyncio
    async def test_no_daemon(self, bar_config):
        assert await refresh_running_daemon(bar_config) is None

    @pytest.mark.asyncio
    async def test_running_daemon(self, daemon, bar_config):
        [surface] = daemon.surfaces
        await wait_until(lambda: surface.renders >= 1)

        assert await refresh_running_daemon(bar_config) == 1
        await wait_until(lambda: surface.renders >= 2)
