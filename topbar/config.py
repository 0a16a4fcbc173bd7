"""Configuration loader for topbar.

Settings come from a JSON file (~/.config/topbar/config.json or $TOPBAR_CONFIG)
validated by pydantic, with a few environment overrides applied on top.
"""

import json
import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from . import constants
from .constants import ConfigPaths

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "on"}


class IntervalConfig(BaseModel):
    """Timer intervals and delays, in seconds."""

    workspace: float = Field(default=constants.WORKSPACE_INTERVAL, gt=0)
    media: float = Field(default=constants.MEDIA_INTERVAL, gt=0)
    power: float = Field(default=constants.POWER_INTERVAL, gt=0)
    network: float = Field(default=constants.NETWORK_INTERVAL, gt=0)
    # How often the monitor list is re-read to add or remove surfaces
    displays: float = Field(default=constants.DISPLAY_INTERVAL, gt=0)
    # Settle delay for the second refresh after a workspace switch. Heuristic.
    settle_delay: float = Field(default=constants.SETTLE_DELAY, ge=0)
    catch_up_delay: float = Field(default=constants.CATCH_UP_DELAY, ge=0)


class NetworkConfig(BaseModel):
    """Liveness probe target and classification thresholds."""

    probe_host: str = Field(default=constants.PROBE_HOST, min_length=1)
    probe_timeout: float = Field(default=constants.PROBE_TIMEOUT, gt=0)
    rtt_high_ms: float = Field(default=constants.RTT_HIGH_MS, gt=0)
    rtt_medium_ms: float = Field(default=constants.RTT_MEDIUM_MS, gt=0)
    rssi_high_dbm: int = Field(default=constants.RSSI_HIGH_DBM, le=0)
    rssi_medium_dbm: int = Field(default=constants.RSSI_MEDIUM_DBM, le=0)
    # Wireless interface for the Linux RSSI lookup (first listed when unset)
    interface: Optional[str] = None


class PowerConfig(BaseModel):
    """Battery backend selection and fallback value."""

    backend: str = Field(default="auto", pattern=r"^(auto|pmset|psutil)$")
    fallback_level: int = Field(default=constants.FALLBACK_BATTERY_LEVEL, ge=0, le=100)
    fallback_charging: bool = constants.FALLBACK_BATTERY_CHARGING


class EwwConfig(BaseModel):
    """Eww publishing settings for the bar windows."""

    enabled: bool = True
    config_dir: Path = ConfigPaths.EWW_CONFIG_DIR
    variable_prefix: str = Field(default=constants.EWW_VARIABLE_PREFIX, min_length=1)
    timeout: float = Field(default=constants.EWW_UPDATE_TIMEOUT, gt=0)


class BarConfig(BaseModel):
    """Complete topbar configuration."""

    aerospace_binary: str = constants.AEROSPACE_BINARY
    socket_path: Path = Field(default_factory=constants.default_socket_path)
    error_display_seconds: float = Field(default=constants.ERROR_DISPLAY_SECONDS, gt=0)
    refresh_existing: bool = False
    intervals: IntervalConfig = Field(default_factory=IntervalConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    power: PowerConfig = Field(default_factory=PowerConfig)
    eww: EwwConfig = Field(default_factory=EwwConfig)


def env_flag(value: Optional[str]) -> bool:
    """Interpret an environment toggle such as REFRESH=true."""
    return value is not None and value.strip().lower() in TRUTHY


def apply_env_overrides(config: BarConfig, environ: Mapping[str, str]) -> BarConfig:
    """Return a copy of config with environment overrides applied.

    TOPBAR_REFRESH (or the legacy REFRESH) selects refresh-existing mode.
    """
    updates = {}
    refresh_value = environ.get("TOPBAR_REFRESH", environ.get("REFRESH"))
    if refresh_value is not None:
        updates["refresh_existing"] = env_flag(refresh_value)
    if environ.get("TOPBAR_SOCKET"):
        updates["socket_path"] = Path(environ["TOPBAR_SOCKET"])
    if environ.get("TOPBAR_AEROSPACE"):
        updates["aerospace_binary"] = environ["TOPBAR_AEROSPACE"]
    if not updates:
        return config
    return config.model_copy(update=updates)


def load_config(
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> BarConfig:
    """Load configuration from JSON file and environment.

    Args:
        config_file: Path to config.json (default: $TOPBAR_CONFIG or ~/.config/topbar/config.json)
        environ: Environment mapping (default: os.environ)

    Returns:
        BarConfig. Missing or invalid files fall back to defaults.
    """
    environ = os.environ if environ is None else environ
    if config_file is None:
        config_file = Path(environ["TOPBAR_CONFIG"]) if environ.get("TOPBAR_CONFIG") else ConfigPaths.CONFIG_FILE

    config = BarConfig()
    if config_file.exists():
        try:
            with open(config_file) as f:
                data = json.load(f)
            config = BarConfig.model_validate(data)
            logger.info(f"Loaded configuration from {config_file}")
        except (json.JSONDecodeError, ValidationError, OSError) as e:
            logger.warning(f"Invalid configuration in {config_file}, using defaults: {e}")
    else:
        logger.debug(f"No configuration file at {config_file}, using defaults")

    return apply_env_overrides(config, environ)
