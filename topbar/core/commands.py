"""Command surface: the request/response operations exposed to surfaces and IPC.

Workspace and window queries return their failures to the caller and also
push them through the error channel. Media, power and network are best
effort and always answer with a displayable value.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..adapters import (
    ActiveWindowAdapter,
    ActiveWorkspaceAdapter,
    AerospaceClient,
    BatteryAdapter,
    BinaryResolver,
    CommandRunner,
    SourceAdapter,
    SpotifyAdapter,
    WifiAdapter,
    WorkspaceListAdapter,
)
from ..adapters.displays import DisplayAdapter, DisplayInfo
from ..config import BarConfig
from ..errors import AdapterError, BinaryNotFound
from ..models import (
    FetchResult,
    MediaTrackState,
    NetworkState,
    PowerState,
    WindowDescriptor,
    WorkspaceDescriptor,
    windows_payload,
    workspaces_payload,
)
from .error_channel import ErrorChannel
from .scheduler import RefreshScheduler

logger = logging.getLogger(__name__)


class UnknownCommand(KeyError):
    """Raised by dispatch() for a name with no handler."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown command: {self.name}"


@dataclass
class SourceSet:
    """All external source adapters, sharing one runner and resolver."""

    aerospace: AerospaceClient
    workspaces: SourceAdapter[List[WorkspaceDescriptor]]
    active_workspace: SourceAdapter[List[WorkspaceDescriptor]]
    active_window: SourceAdapter[List[WindowDescriptor]]
    media: SpotifyAdapter
    power: SourceAdapter[PowerState]
    network: SourceAdapter[NetworkState]
    displays: SourceAdapter[List[DisplayInfo]]

    @classmethod
    def create(
        cls,
        config: BarConfig,
        runner: Optional[CommandRunner] = None,
        resolver: Optional[BinaryResolver] = None,
    ) -> "SourceSet":
        runner = runner or CommandRunner()
        resolver = resolver or BinaryResolver(runner)
        client = AerospaceClient(runner, resolver, binary=config.aerospace_binary)
        return cls(
            aerospace=client,
            workspaces=WorkspaceListAdapter(client),
            active_workspace=ActiveWorkspaceAdapter(client),
            active_window=ActiveWindowAdapter(client),
            media=SpotifyAdapter(runner, resolver),
            power=BatteryAdapter(runner, resolver, config.power),
            network=WifiAdapter(runner, resolver, config.network),
            displays=DisplayAdapter(client),
        )


class CommandSurface:
    """Typed operations plus a name-based dispatcher for JSON-RPC."""

    def __init__(
        self,
        sources: SourceSet,
        scheduler: RefreshScheduler,
        error_channel: ErrorChannel,
    ) -> None:
        self.sources = sources
        self.scheduler = scheduler
        self.error_channel = error_channel
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[Any]]] = {
            "get-spaces": self._get_spaces_payload,
            "get-active-space": self._get_active_space_payload,
            "get-active-window": self._get_active_window_payload,
            "switch-space": self._switch_space_payload,
            "get-spotify-track": self._get_spotify_track_payload,
            "focus-spotify": self._focus_spotify_payload,
            "get-battery-status": self._get_battery_status_payload,
            "get-wifi-status": self._get_wifi_status_payload,
            "refresh-data": self._refresh_data_payload,
            "list-displays": self._list_displays_payload,
        }

    @property
    def commands(self) -> List[str]:
        return sorted(self._handlers)

    async def _reported(self, operation: str, adapter: SourceAdapter) -> FetchResult:
        """Fetch an aerospace-backed source, reporting failures."""
        result = await adapter.fetch()
        if result.ok:
            self.error_channel.forget(self.sources.aerospace.binary)
            self.error_channel.recovered(operation)
        else:
            self.error_channel.report(operation, result.error)
        return result

    async def get_spaces(self) -> FetchResult[List[WorkspaceDescriptor]]:
        return await self._reported("get-spaces", self.sources.workspaces)

    async def get_active_space(self) -> FetchResult[List[WorkspaceDescriptor]]:
        return await self._reported("get-active-space", self.sources.active_workspace)

    async def get_active_window(self) -> FetchResult[List[WindowDescriptor]]:
        return await self._reported("get-active-window", self.sources.active_window)

    async def switch_space(self, workspace_id: str) -> FetchResult[bool]:
        """Ask aerospace to focus a workspace, then refresh every surface.

        The refresh (immediate plus one after the settle delay) is sent whether
        or not the command succeeded, so surfaces always show the real state.

        Raises:
            ValueError: If workspace_id is empty
        """
        if not workspace_id:
            raise ValueError("workspace id must not be empty")
        try:
            await self.sources.aerospace.switch_workspace(workspace_id)
            logger.info(f"Switched to workspace {workspace_id}")
            return FetchResult.success(True)
        except AdapterError as e:
            self.error_channel.report("switch-space", e, suppress_repeats=False)
            return FetchResult.failure(e)
        finally:
            self.scheduler.refresh_after_action()

    async def get_spotify_track(self) -> FetchResult[MediaTrackState]:
        return await self.sources.media.fetch()

    async def focus_spotify(self) -> FetchResult[bool]:
        try:
            await self.sources.media.focus()
            return FetchResult.success(True)
        except AdapterError as e:
            level = logging.DEBUG if isinstance(e, BinaryNotFound) else logging.WARNING
            logger.log(level, f"Could not focus Spotify: {e.message}")
            return FetchResult.failure(e)

    async def get_battery_status(self) -> FetchResult[PowerState]:
        return await self.sources.power.fetch()

    async def get_wifi_status(self) -> FetchResult[NetworkState]:
        return await self.sources.network.fetch()

    async def list_displays(self) -> List[DisplayInfo]:
        return (await self.sources.displays.fetch()).unwrap()

    def refresh_data(self) -> int:
        """Broadcast one refresh signal now; returns surfaces reached."""
        return self.scheduler.refresh_now()

    async def dispatch(self, name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Run a command by name and return its JSON-ready payload.

        Raises:
            UnknownCommand: No such command
            KeyError: Required parameter missing
            ValueError: Invalid parameter value
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise UnknownCommand(name)
        logger.debug(f"Dispatching {name} {params or {}}")
        return await handler(params or {})

    async def _get_spaces_payload(self, params: Dict[str, Any]) -> Any:
        return (await self.get_spaces()).to_payload(workspaces_payload)

    async def _get_active_space_payload(self, params: Dict[str, Any]) -> Any:
        return (await self.get_active_space()).to_payload(workspaces_payload)

    async def _get_active_window_payload(self, params: Dict[str, Any]) -> Any:
        return (await self.get_active_window()).to_payload(windows_payload)

    async def _switch_space_payload(self, params: Dict[str, Any]) -> Any:
        workspace_id = params["workspace"]
        result = await self.switch_space(str(workspace_id))
        return result.to_payload(lambda ok: {"success": ok})

    async def _get_spotify_track_payload(self, params: Dict[str, Any]) -> Any:
        return (await self.get_spotify_track()).to_payload(lambda track: track.to_payload())

    async def _focus_spotify_payload(self, params: Dict[str, Any]) -> Any:
        return (await self.focus_spotify()).to_payload(lambda ok: {"success": ok})

    async def _get_battery_status_payload(self, params: Dict[str, Any]) -> Any:
        return (await self.get_battery_status()).to_payload(lambda power: power.to_payload())

    async def _get_wifi_status_payload(self, params: Dict[str, Any]) -> Any:
        return (await self.get_wifi_status()).to_payload(lambda state: state.to_payload())

    async def _refresh_data_payload(self, params: Dict[str, Any]) -> Any:
        return {"surfaces": self.refresh_data()}

    async def _list_displays_payload(self, params: Dict[str, Any]) -> Any:
        return [display.to_payload() for display in await self.list_displays()]
