"""Bar surface: one presentation instance per display.

A surface never receives data from the core. Delivery only drops the signal
into a mailbox; the surface's own task drains it, re-pulls the matching
sources through the command surface and re-renders. Pending signals coalesce,
so a slow render never builds a backlog.
"""

import asyncio
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Set

from ..adapters.displays import DisplayInfo
from ..constants import (
    ALL_TOPICS,
    TOPIC_MEDIA,
    TOPIC_NETWORK,
    TOPIC_POWER,
    TOPIC_REFRESH,
    TOPIC_WORKSPACES,
)
from ..core.broadcast import SurfaceClosed, SurfaceRegistry
from ..core.commands import CommandSurface
from ..logging_config import log_timing
from ..models import ErrorNotice, FetchResult, RefreshSignal
from .renderers import Renderer
from .state import BarViewState

logger = logging.getLogger(__name__)


class BarSurface:
    """Status bar bound to one display."""

    def __init__(
        self,
        display: DisplayInfo,
        commands: CommandSurface,
        renderer: Renderer,
        error_display_seconds: float = 10.0,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.display = display
        self.surface_id = display.slug
        self.commands = commands
        self.renderer = renderer
        self.error_display_seconds = error_display_seconds
        self.monotonic = monotonic
        self.view = BarViewState(display=self.surface_id)
        self.renders = 0

        self._pending_topics: Set[str] = set()
        self._pending_errors: List[ErrorNotice] = []
        self._wakeup = asyncio.Event()
        self._closed = False
        self._task: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<BarSurface {self.surface_id} ({self.display.name}) {state}>"

    @property
    def destroyed(self) -> bool:
        return self._closed

    # Delivery (called by the broadcast fan-out; never blocks)

    def deliver_refresh(self, signal: RefreshSignal) -> None:
        if self._closed:
            raise SurfaceClosed(self.surface_id)
        self._pending_topics.add(signal.topic)
        self._wakeup.set()

    def deliver_error(self, notice: ErrorNotice) -> None:
        if self._closed:
            raise SurfaceClosed(self.surface_id)
        self._pending_errors.append(notice)
        self._wakeup.set()

    # Lifecycle

    def start(self) -> asyncio.Task:
        """Load initial state and start consuming signals."""
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"topbar-surface-{self.surface_id}")
        return self._task

    async def close(self) -> None:
        """Tear down; later deliveries raise SurfaceClosed."""
        if self._closed:
            return
        self._closed = True
        self._wakeup.set()
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        await self.renderer.close(self.surface_id)
        logger.info(f"Closed surface {self.surface_id}")

    async def _run(self) -> None:
        await self._safe_cycle(ALL_TOPICS)
        while not self._closed:
            await self._wakeup.wait()
            self._wakeup.clear()
            if self._closed:
                break
            await self._drain()

    async def _drain(self) -> None:
        topics, self._pending_topics = self._pending_topics, set()
        notices, self._pending_errors = self._pending_errors, []
        if notices:
            # Only the latest notice is shown
            self.view.show_banner(notices[-1], self.error_display_seconds, self.monotonic())
        await self._safe_cycle(topics)

    async def _safe_cycle(self, topics: Iterable[str]) -> None:
        try:
            await self.refresh(topics)
        except Exception as e:
            logger.error(f"Surface {self.surface_id} refresh failed: {e}", exc_info=True)

    # Re-pull and render

    async def refresh(self, topics: Iterable[str] = ALL_TOPICS) -> None:
        """Re-pull the sources for the given topics, then render.

        refresh-data re-pulls every source; the timer topics (workspaces and
        the indicators) only re-pull their own source. A failing pull is logged
        and the remaining state is still rendered.
        """
        topics = set(topics)
        if TOPIC_REFRESH in topics:
            topics = set(ALL_TOPICS)
        with log_timing(f"surface {self.surface_id} refresh {sorted(topics)}", logger):
            jobs = []
            if TOPIC_WORKSPACES in topics:
                jobs.append(self._pull_workspaces())
            if TOPIC_MEDIA in topics:
                jobs.append(self._pull_media())
            if TOPIC_POWER in topics:
                jobs.append(self._pull_power())
            if TOPIC_NETWORK in topics:
                jobs.append(self._pull_network())
            results = await asyncio.gather(*jobs, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(
                    f"Surface {self.surface_id} pull failed: {result}",
                    exc_info=(type(result), result, result.__traceback__),
                )
        await self.render()

    async def render(self) -> bool:
        if self._closed:
            return False
        self.view.visible_banner(self.monotonic())
        drawn = await self.renderer.render(self.surface_id, self.view)
        self.renders += 1
        return drawn

    async def _pull_workspaces(self) -> None:
        spaces, active, window = await asyncio.gather(
            self.commands.get_spaces(),
            self.commands.get_active_space(),
            self.commands.get_active_window(),
        )
        self.view.loading = False
        self.view.error = self._first_error(spaces, active, window)

        self.view.workspaces = spaces.value if spaces.ok else []
        self.view.active_workspace = active.value[0].id if active.ok and active.value else None
        self.view.active_window = window.value[0] if window.ok and window.value else None

    @staticmethod
    def _first_error(*results: FetchResult) -> Optional[str]:
        for result in results:
            if not result.ok:
                return result.error.message
        return None

    async def _pull_media(self) -> None:
        self.view.media = (await self.commands.get_spotify_track()).value

    async def _pull_power(self) -> None:
        self.view.power = (await self.commands.get_battery_status()).value

    async def _pull_network(self) -> None:
        self.view.network = (await self.commands.get_wifi_status()).value

    # User actions

    async def retry(self) -> None:
        """Manual refresh control: re-invoke the workspace queries now."""
        logger.info(f"Retry requested on surface {self.surface_id}")
        self.view.error = None
        self.view.loading = True
        await self._pull_workspaces()
        await self.render()

    async def switch_space(self, workspace_id: str) -> bool:
        """Switch workspace; the resulting refresh arrives through the broadcast."""
        result = await self.commands.switch_space(workspace_id)
        return result.ok

    async def focus_spotify(self) -> bool:
        return (await self.commands.focus_spotify()).ok

    async def dismiss_error(self) -> None:
        self.view.dismiss_banner()
        await self.render()


class SurfaceFactory:
    """Create exactly one registered surface per display."""

    def __init__(
        self,
        registry: SurfaceRegistry,
        commands: CommandSurface,
        renderer: Renderer,
        error_display_seconds: float = 10.0,
    ) -> None:
        self.registry = registry
        self.commands = commands
        self.renderer = renderer
        self.error_display_seconds = error_display_seconds

    def create(self, display: DisplayInfo) -> BarSurface:
        surface = BarSurface(display, self.commands, self.renderer, self.error_display_seconds)
        self.registry.register(surface)
        surface.start()
        logger.info(f"Created surface {surface.surface_id} for display {display.name or display.monitor_id}")
        return surface

    async def sync(self, displays: List[DisplayInfo]) -> List[BarSurface]:
        """Make the registered surfaces match the given displays.

        Surfaces for displays that disappeared are closed; new displays get a
        new surface; existing ones are kept.
        """
        wanted = {display.slug: display for display in displays}
        current: Dict[str, BarSurface] = {}
        for surface in self.surfaces():
            if surface.surface_id in wanted and not surface.destroyed:
                current[surface.surface_id] = surface
            else:
                self.registry.unregister(surface.surface_id, surface)
                await surface.close()

        return [
            current[slug] if slug in current else self.create(display)
            for slug, display in wanted.items()
        ]

    def surfaces(self) -> List[BarSurface]:
        """Registered bar surfaces (other subscribers are left alone)."""
        return [h for h in self.registry.snapshot() if isinstance(h, BarSurface)]

    async def close_all(self) -> None:
        for surface in self.surfaces():
            self.registry.unregister(surface.surface_id, surface)
            await surface.close()
