"""topbar daemon: wires adapters, scheduler, surfaces and the control socket.

Lifecycle:
    initialize() -> run() until SIGTERM/SIGINT -> shutdown()
"""

import asyncio
import logging
import os
import signal
import time
from typing import Any, Dict, List, Optional

from .adapters.displays import DisplayInfo
from .adapters.process import BinaryResolver, CommandRunner
from .config import BarConfig
from .core.broadcast import BroadcastFanout, SurfaceRegistry
from .core.commands import CommandSurface, SourceSet
from .core.error_channel import ErrorChannel
from .core.scheduler import RefreshScheduler
from .daemon_client import DaemonClient, DaemonError
from .ipc_server import IPCServer
from .surfaces.renderers import ConsoleRenderer, EwwRenderer, Renderer
from .surfaces.surface import BarSurface, SurfaceFactory

logger = logging.getLogger(__name__)


class TopBarDaemon:
    """Main daemon class."""

    def __init__(
        self,
        config: BarConfig,
        runner: Optional[CommandRunner] = None,
        renderer: Optional[Renderer] = None,
        sources: Optional[SourceSet] = None,
        console: bool = False,
        serve_ipc: bool = True,
    ) -> None:
        """Initialize daemon.

        Args:
            config: Loaded configuration
            runner: Subprocess runner shared by adapters and the eww renderer
            renderer: Renderer override (default: eww, or console)
            sources: Pre-built adapters (default: built from config)
            console: Render to the terminal instead of eww
            serve_ipc: Open the control socket
        """
        self.config = config
        self.runner = runner or CommandRunner()
        self.resolver = BinaryResolver(self.runner)
        self.console = console
        self.serve_ipc = serve_ipc

        self.registry = SurfaceRegistry()
        self.fanout = BroadcastFanout(self.registry)
        self.scheduler = RefreshScheduler(self.fanout, config.intervals)
        self.error_channel = ErrorChannel(self.fanout)
        self.sources = sources or SourceSet.create(config, self.runner, self.resolver)
        self.commands = CommandSurface(self.sources, self.scheduler, self.error_channel)
        self.renderer = renderer or self._default_renderer()
        self.factory = SurfaceFactory(
            self.registry, self.commands, self.renderer, config.error_display_seconds
        )

        self.ipc_server: Optional[IPCServer] = None
        self.displays: List[DisplayInfo] = []
        self.shutdown_event = asyncio.Event()
        self.started_at: Optional[float] = None
        self._display_task: Optional[asyncio.Task] = None

    def _default_renderer(self) -> Renderer:
        if self.console or not self.config.eww.enabled:
            return ConsoleRenderer()
        return EwwRenderer(self.runner, self.resolver, self.config.eww)

    @property
    def surfaces(self) -> List[BarSurface]:
        return self.factory.surfaces()

    async def initialize(self) -> None:
        """Open the control socket and one surface per display."""
        self.started_at = time.monotonic()
        if self.serve_ipc:
            self.ipc_server = IPCServer(
                self.commands, self.registry, self.config.socket_path, self.status
            )
            await self.ipc_server.start()
        await self.rebuild_surfaces()

    async def rebuild_surfaces(self) -> List[BarSurface]:
        """Re-read the monitor list and create/close surfaces to match it."""
        displays = await self.commands.list_displays()
        if [d.slug for d in displays] != [d.slug for d in self.displays]:
            logger.info(f"Displays: {', '.join(d.name or d.slug for d in displays)}")
        self.displays = displays
        return await self.factory.sync(displays)

    async def _watch_displays(self) -> None:
        while True:
            await asyncio.sleep(self.config.intervals.displays)
            try:
                await self.rebuild_surfaces()
            except Exception as e:
                logger.error(f"Failed to rebuild surfaces: {e}", exc_info=True)

    async def run(self, defer_first: bool = False) -> None:
        """Start timers and wait for the shutdown signal."""
        logger.info(f"Starting topbar with {len(self.surfaces)} surface(s)")
        self.scheduler.start(defer_first=defer_first)
        self._display_task = asyncio.create_task(self._watch_displays(), name="topbar-displays")
        await self.shutdown_event.wait()

    async def shutdown(self) -> None:
        """Stop timers, close surfaces and the control socket."""
        logger.info("Shutting down topbar...")

        if self._display_task is not None:
            self._display_task.cancel()
            await asyncio.gather(self._display_task, return_exceptions=True)
            self._display_task = None

        await self.scheduler.stop()
        await self.factory.close_all()

        if self.ipc_server:
            try:
                await asyncio.wait_for(self.ipc_server.stop(), timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("IPC server shutdown timed out after 5s (continuing)")

        logger.info("topbar shutdown complete")

    def status(self) -> Dict[str, Any]:
        uptime = time.monotonic() - self.started_at if self.started_at else 0.0
        return {
            "status": "running",
            "pid": os.getpid(),
            "uptime_seconds": round(uptime, 1),
            "displays": [d.to_payload() for d in self.displays],
            "surfaces": [h.surface_id for h in self.registry.live()],
            "refreshes_sent": self.fanout.refreshes_sent,
            "errors_sent": self.fanout.errors_sent,
            "scheduler_running": self.scheduler.running,
            "intervals": self.config.intervals.model_dump(),
        }

    def setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def shutdown_handler(signum, frame):
            logger.info(f"Received signal {signum}, initiating shutdown...")
            loop.call_soon_threadsafe(self.shutdown_event.set)

        signal.signal(signal.SIGTERM, shutdown_handler)
        signal.signal(signal.SIGINT, shutdown_handler)


async def refresh_running_daemon(config: BarConfig) -> Optional[int]:
    """Catch-up mode: signal an already-running daemon instead of starting one.

    Waits catch_up_delay so freshly created surfaces are subscribed, then asks
    the daemon to broadcast refresh-data.

    Returns:
        Number of surfaces reached, or None when no daemon is listening
    """
    await asyncio.sleep(config.intervals.catch_up_delay)
    client = DaemonClient(config.socket_path)
    try:
        surfaces = await client.refresh()
    except DaemonError as e:
        logger.info(f"No running daemon to refresh: {e}")
        return None
    finally:
        await client.close()
    logger.info(f"Refreshed {surfaces} running surface(s)")
    return surfaces


async def run_daemon(
    config: BarConfig,
    console: bool = False,
    renderer: Optional[Renderer] = None,
) -> int:
    """Async main function.

    In refresh-existing mode a running daemon is refreshed and this returns;
    when none is listening a new daemon starts with its first refresh deferred.

    Returns:
        Exit code (0 = success, non-zero = error)
    """
    if config.refresh_existing and await refresh_running_daemon(config) is not None:
        return 0

    daemon = TopBarDaemon(config, renderer=renderer, console=console)
    try:
        daemon.setup_signal_handlers()
        await daemon.initialize()
        await daemon.run(defer_first=config.refresh_existing)
        return 0
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1
    finally:
        await daemon.shutdown()
