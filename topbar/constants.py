"""Centralized paths, signal names and tuning constants for topbar.

Use these constants instead of hardcoding values in adapters or surfaces.
"""

import os
from pathlib import Path
from typing import Final, Tuple


class ConfigPaths:
    """Centralized configuration paths.

    Computed once at import time from the user's home directory.
    """

    HOME: Final[Path] = Path.home()
    CONFIG_DIR: Final[Path] = HOME / ".config" / "topbar"
    CONFIG_FILE: Final[Path] = CONFIG_DIR / "config.json"
    EWW_CONFIG_DIR: Final[Path] = HOME / ".config" / "eww" / "topbar"


def default_socket_path() -> Path:
    """Control socket path under $XDG_RUNTIME_DIR (falls back to /run/user/<uid>)."""
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR") or f"/run/user/{os.getuid()}"
    return Path(runtime_dir) / "topbar" / "ipc.sock"


# Signal names delivered from core to every surface
SIGNAL_REFRESH: Final[str] = "refresh-data"
SIGNAL_ERROR: Final[str] = "error"

# Refresh topics (which timer produced a RefreshSignal). TOPIC_REFRESH covers
# every source; TOPIC_WORKSPACES is the main tick for workspace and window data.
TOPIC_REFRESH: Final[str] = SIGNAL_REFRESH
TOPIC_WORKSPACES: Final[str] = "workspaces"
TOPIC_MEDIA: Final[str] = "media"
TOPIC_POWER: Final[str] = "power"
TOPIC_NETWORK: Final[str] = "network"
ALL_TOPICS: Final[Tuple[str, ...]] = (TOPIC_WORKSPACES, TOPIC_MEDIA, TOPIC_POWER, TOPIC_NETWORK)

# Timer intervals (seconds)
WORKSPACE_INTERVAL: Final[float] = 1.0
MEDIA_INTERVAL: Final[float] = 2.0
POWER_INTERVAL: Final[float] = 30.0
NETWORK_INTERVAL: Final[float] = 30.0
DISPLAY_INTERVAL: Final[float] = 10.0

# Action refresh and startup catch-up delays (seconds)
SETTLE_DELAY: Final[float] = 0.15
CATCH_UP_DELAY: Final[float] = 1.0

# Error banner
ERROR_DISPLAY_SECONDS: Final[float] = 10.0

# External binaries
AEROSPACE_BINARY: Final[str] = "aerospace"
OSASCRIPT_BINARY: Final[str] = "osascript"
EWW_BINARY: Final[str] = "eww"

# Install prefixes checked before $PATH when resolving a binary
BINARY_SEARCH_PREFIXES: Final[Tuple[str, ...]] = (
    "/opt/homebrew/bin",
    "/usr/local/bin",
    "/run/current-system/sw/bin",
    "~/.nix-profile/bin",
    "~/.local/bin",
)

# Power fallback when the level cannot be read
FALLBACK_BATTERY_LEVEL: Final[int] = 100
FALLBACK_BATTERY_CHARGING: Final[bool] = True

# Network probe and classification thresholds
PROBE_HOST: Final[str] = "1.1.1.1"
PROBE_TIMEOUT: Final[float] = 2.0
RTT_HIGH_MS: Final[float] = 20.0
RTT_MEDIUM_MS: Final[float] = 100.0
RSSI_HIGH_DBM: Final[int] = -55
RSSI_MEDIUM_DBM: Final[int] = -70

AIRPORT_BINARY: Final[str] = (
    "/System/Library/PrivateFrameworks/Apple80211.framework/Versions/Current/Resources/airport"
)
PROC_NET_WIRELESS: Final[Path] = Path("/proc/net/wireless")

# eww publishing
EWW_UPDATE_TIMEOUT: Final[float] = 2.0
EWW_VARIABLE_PREFIX: Final[str] = "topbar"
