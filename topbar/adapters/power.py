"""Battery adapter.

macOS reads `pmset -g batt`; other platforms use psutil. Battery is a cosmetic
indicator, so any failure yields the configured fallback (100%, charging)
instead of an error.
"""

import asyncio
import logging
import re
import sys
from typing import Optional

import psutil
from pydantic import ValidationError

from ..config import PowerConfig
from ..errors import AdapterError, ParseError, ScriptError
from ..models import PowerState
from .base import BestEffortAdapter
from .process import BinaryResolver, CommandRunner

logger = logging.getLogger(__name__)

PERCENT_PATTERN = re.compile(r"(\d{1,3}(?:\.\d+)?)%")
CHARGE_STATE_PATTERN = re.compile(r"\d%;\s*([A-Za-z][A-Za-z ]*?)\s*;")

CHARGING_STATES = {"charging", "charged", "finishing charge", "ac attached"}
DISCHARGING_STATES = {"discharging"}


def parse_pmset(raw: str) -> PowerState:
    """Extract level and charging flag from `pmset -g batt` output.

    Example output:
        Now drawing from 'Battery Power'
         -InternalBattery-0 (id=1234)	85%; discharging; 4:12 remaining present: true
    """
    match = PERCENT_PATTERN.search(raw)
    if not match:
        raise ParseError(raw, "no battery percentage")

    charging: Optional[bool] = None
    state_match = CHARGE_STATE_PATTERN.search(raw)
    if state_match:
        state = state_match.group(1).lower()
        if state in CHARGING_STATES:
            charging = True
        elif state in DISCHARGING_STATES:
            charging = False
    if charging is None:
        if "'AC Power'" in raw:
            charging = True
        elif "'Battery Power'" in raw:
            charging = False

    try:
        return PowerState(level_percent=float(match.group(1)), charging=charging)
    except ValidationError as e:
        raise ParseError(raw, f"invalid level: {e.errors()[0]['msg']}")


class BatteryAdapter(BestEffortAdapter[PowerState]):
    """Battery level and charging flag."""

    name = "power"

    def __init__(
        self,
        runner: CommandRunner,
        resolver: BinaryResolver,
        config: Optional[PowerConfig] = None,
        platform: str = sys.platform,
    ) -> None:
        self.runner = runner
        self.resolver = resolver
        self.config = config or PowerConfig()
        self.platform = platform

    @property
    def backend(self) -> str:
        if self.config.backend != "auto":
            return self.config.backend
        return "pmset" if self.platform == "darwin" else "psutil"

    async def _fetch(self) -> PowerState:
        if self.backend == "pmset":
            return await self._fetch_pmset()
        return await self._fetch_psutil()

    async def _fetch_pmset(self) -> PowerState:
        path = await self.resolver.resolve("pmset")
        result = await self.runner.run([path, "-g", "batt"])
        return parse_pmset(result.check().stdout)

    async def _fetch_psutil(self) -> PowerState:
        try:
            battery = await asyncio.to_thread(psutil.sensors_battery)
        except (OSError, RuntimeError, AttributeError) as e:
            raise ScriptError(f"psutil battery query failed: {e}")
        if battery is None:
            raise ParseError("", "no battery reported")
        try:
            return PowerState(level_percent=float(battery.percent), charging=battery.power_plugged)
        except ValidationError as e:
            raise ParseError(str(battery), f"invalid level: {e.errors()[0]['msg']}")

    def default(self, error: AdapterError) -> PowerState:
        return PowerState(
            level_percent=self.config.fallback_level,
            charging=self.config.fallback_charging,
        )
