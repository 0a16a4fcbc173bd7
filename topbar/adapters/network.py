"""Wi-Fi / network quality adapter.

Three stages, each mapped to a safe state on failure:
1. Link: is there a default route?          no  -> Disconnected
2. Liveness: one bounded ping to probe_host  no  -> NoInternet
3. Quality: RSSI when readable, else probe RTT   -> High / Medium / Low
"""

import asyncio
import logging
import math
import re
import sys
from pathlib import Path
from typing import Optional

from ..config import NetworkConfig
from ..constants import AIRPORT_BINARY, PROC_NET_WIRELESS
from ..errors import AdapterError, ParseError
from ..models import NetworkState
from .base import BestEffortAdapter
from .process import BinaryResolver, CommandRunner

logger = logging.getLogger(__name__)

PING_TIME_PATTERN = re.compile(r"time[=<]\s*([\d.]+)\s*ms")
AIRPORT_RSSI_PATTERN = re.compile(r"agrCtlRSSI:\s*(-?\d+)")


def classify_rtt(rtt_ms: float, high_ms: float = 20.0, medium_ms: float = 100.0) -> NetworkState:
    """Classify probe round-trip time as a proxy for link quality."""
    if rtt_ms < high_ms:
        return NetworkState.HIGH
    if rtt_ms < medium_ms:
        return NetworkState.MEDIUM
    return NetworkState.LOW


def classify_rssi(rssi_dbm: int, high_dbm: int = -55, medium_dbm: int = -70) -> NetworkState:
    """Classify received signal strength (dBm, closer to zero is stronger)."""
    if rssi_dbm >= high_dbm:
        return NetworkState.HIGH
    if rssi_dbm >= medium_dbm:
        return NetworkState.MEDIUM
    return NetworkState.LOW


def parse_ping_rtt(raw: str) -> float:
    match = PING_TIME_PATTERN.search(raw)
    if not match:
        raise ParseError(raw, "no round-trip time in ping output")
    return float(match.group(1))


def parse_airport_rssi(raw: str) -> int:
    match = AIRPORT_RSSI_PATTERN.search(raw)
    if not match:
        raise ParseError(raw, "no agrCtlRSSI in airport output")
    return int(match.group(1))


def parse_proc_net_wireless(raw: str, interface: Optional[str] = None) -> int:
    """Signal level (dBm) from /proc/net/wireless.

    Example:
        Inter-| sta-|   Quality        |   Discarded packets
         face | tus | link level noise |  nwid  crypt   frag
         wlan0: 0000   54.  -56.  -256        0      0      0
    """
    for line in raw.splitlines()[2:]:
        if ":" not in line:
            continue
        name, _, rest = line.partition(":")
        if interface and name.strip() != interface:
            continue
        fields = rest.split()
        if len(fields) < 3:
            continue
        try:
            return int(float(fields[2].rstrip(".")))
        except ValueError:
            raise ParseError(raw, f"invalid signal level {fields[2]!r}")
    raise ParseError(raw, "no wireless interface listed")


class WifiAdapter(BestEffortAdapter[NetworkState]):
    """Qualitative network state."""

    name = "network"

    def __init__(
        self,
        runner: CommandRunner,
        resolver: BinaryResolver,
        config: Optional[NetworkConfig] = None,
        platform: str = sys.platform,
        proc_wireless: Path = PROC_NET_WIRELESS,
    ) -> None:
        self.runner = runner
        self.resolver = resolver
        self.config = config or NetworkConfig()
        self.platform = platform
        self.proc_wireless = proc_wireless

    @property
    def is_macos(self) -> bool:
        return self.platform == "darwin"

    async def _fetch(self) -> NetworkState:
        if not await self.link_up():
            return NetworkState.DISCONNECTED

        try:
            rtt_ms = await self.probe()
        except AdapterError as e:
            logger.debug(f"Liveness probe to {self.config.probe_host} failed: {e}")
            return NetworkState.NO_INTERNET

        rssi = await self.read_rssi()
        if rssi is not None:
            return classify_rssi(rssi, self.config.rssi_high_dbm, self.config.rssi_medium_dbm)
        return classify_rtt(rtt_ms, self.config.rtt_high_ms, self.config.rtt_medium_ms)

    def default(self, error: AdapterError) -> NetworkState:
        return NetworkState.DISCONNECTED

    async def link_up(self) -> bool:
        """True when a default route exists."""
        if self.is_macos:
            argv = [await self.resolver.resolve("route"), "-n", "get", "default"]
        else:
            argv = [await self.resolver.resolve("ip"), "route", "show", "default"]
        result = await self.runner.run(argv)
        return result.ok and bool(result.stdout.strip())

    async def probe(self) -> float:
        """Single ping to probe_host; returns RTT in milliseconds.

        Raises:
            ProbeTimeout: ping did not finish within the timeout
            ProcessError: host unreachable
            ParseError: no timing in the output
        """
        timeout = self.config.probe_timeout
        wait_flag = "-t" if self.is_macos else "-W"
        argv = [
            await self.resolver.resolve("ping"),
            "-c", "1",
            wait_flag, str(max(1, math.ceil(timeout))),
            self.config.probe_host,
        ]
        # ping's own deadline rounds up to whole seconds
        result = await self.runner.run(argv, timeout=math.ceil(timeout) + 1.0)
        return parse_ping_rtt(result.check().stdout)

    async def read_rssi(self) -> Optional[int]:
        """Signal strength in dBm, or None when it cannot be read."""
        try:
            if self.is_macos:
                path = await self.resolver.resolve(AIRPORT_BINARY)
                result = await self.runner.run([path, "-I"])
                return parse_airport_rssi(result.check().stdout)
            raw = await asyncio.to_thread(self.proc_wireless.read_text)
            return parse_proc_net_wireless(raw, self.config.interface)
        except (AdapterError, OSError) as e:
            logger.debug(f"RSSI unavailable, falling back to RTT: {e}")
            return None
