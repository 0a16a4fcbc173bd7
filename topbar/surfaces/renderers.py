"""Renderers that publish a bar view to the screen.

EwwRenderer pushes a JSON snapshot per display into an eww variable via the
`eww update` CLI; ConsoleRenderer prints a rich line per update.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, Optional

from rich.console import Console

from ..adapters.process import BinaryResolver, CommandRunner
from ..config import EwwConfig
from ..constants import EWW_BINARY
from ..errors import AdapterError
from .render import format_clock, render_text, view_payload
from .state import BarViewState

logger = logging.getLogger(__name__)


class Renderer(ABC):
    """Draws BarViewState snapshots for one or more surfaces."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self.clock = clock

    @abstractmethod
    async def render(self, surface_id: str, view: BarViewState) -> bool:
        """Publish the view. Returns True if it was drawn (or unchanged)."""

    async def close(self, surface_id: str) -> None:
        """Forget per-surface state."""


class EwwRenderer(Renderer):
    """Publish bar state to eww widgets.

    Each surface owns the variable `<prefix>_<surface_id>`; identical
    consecutive payloads are skipped.
    """

    def __init__(
        self,
        runner: CommandRunner,
        resolver: BinaryResolver,
        config: Optional[EwwConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        super().__init__(clock)
        self.runner = runner
        self.resolver = resolver
        self.config = config or EwwConfig()
        self._last_payload: Dict[str, str] = {}

    def variable_name(self, surface_id: str) -> str:
        return f"{self.config.variable_prefix}_{surface_id}"

    async def render(self, surface_id: str, view: BarViewState) -> bool:
        payload = json.dumps(view_payload(view, format_clock(self.clock()), time.monotonic()))
        if self._last_payload.get(surface_id) == payload:
            logger.debug(f"Bar state for {surface_id} unchanged, skipping publish")
            return True

        if await self.update_variable(self.variable_name(surface_id), payload):
            self._last_payload[surface_id] = payload
            return True
        return False

    async def update_variable(self, variable: str, value: str) -> bool:
        """Run `eww --config <dir> update <variable>=<value>`.

        Returns:
            True if update succeeded
        """
        try:
            eww = await self.resolver.resolve(EWW_BINARY)
            result = await self.runner.run(
                [eww, "--config", str(self.config.config_dir), "update", f"{variable}={value}"],
                timeout=self.config.timeout,
            )
        except AdapterError as e:
            logger.warning(f"Eww update of {variable} failed: {e}")
            return False

        if not result.ok:
            logger.warning(f"Eww update failed (exit {result.exit_code}): {result.stderr.strip()}")
            return False

        logger.debug(f"Updated Eww variable {variable}")
        return True

    async def close(self, surface_id: str) -> None:
        self._last_payload.pop(surface_id, None)


class ConsoleRenderer(Renderer):
    """Print each bar update as one line of rich text."""

    def __init__(
        self,
        console: Optional[Console] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        super().__init__(clock)
        self.console = console or Console()

    async def render(self, surface_id: str, view: BarViewState) -> bool:
        self.console.print(render_text(view, format_clock(self.clock())), overflow="ellipsis", no_wrap=True)
        return True
