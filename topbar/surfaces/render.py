"""Formatting helpers shared by the bar renderers."""

from datetime import datetime
from typing import Any, Dict, Optional

from rich.text import Text

from ..models import MediaTrackState, NetworkState, PowerState
from .state import BarViewState

# Nerd Font glyphs
BATTERY_FULL = "󰁹"      # nf-md-battery
BATTERY_MEDIUM = "󰁿"    # nf-md-battery_50
BATTERY_LOW = "󰁻"       # nf-md-battery_20
BATTERY_WARNING = "󰂃"   # nf-md-battery_alert
MEDIA_ICON = "󰓇"        # nf-md-spotify

WIFI_ICONS: Dict[NetworkState, str] = {
    NetworkState.HIGH: "󰤨",          # nf-md-wifi_strength_4
    NetworkState.MEDIUM: "󰤢",        # nf-md-wifi_strength_2
    NetworkState.LOW: "󰤟",           # nf-md-wifi_strength_1
    NetworkState.NO_INTERNET: "󰤫",   # nf-md-wifi_strength_alert_outline
    NetworkState.DISCONNECTED: "󰤮",  # nf-md-wifi_strength_off
}


def format_clock(now: Optional[datetime] = None) -> str:
    """Format as `HH:MM - Weekday D Mon`, e.g. `20:55 - Thursday 13 Mar`."""
    now = now or datetime.now()
    return f"{now:%H:%M} - {now:%A} {now.day} {now:%b}"


def battery_icon(power: PowerState) -> str:
    level = power.level_percent
    if level >= 75:
        return BATTERY_FULL
    elif level >= 40:
        return BATTERY_MEDIUM
    elif level >= 15:
        return BATTERY_LOW
    else:
        return BATTERY_WARNING


def wifi_icon(state: NetworkState) -> str:
    return WIFI_ICONS.get(state, WIFI_ICONS[NetworkState.DISCONNECTED])


def media_label(track: Optional[MediaTrackState]) -> str:
    """`title - artist` while playing, "Not playing" otherwise."""
    if track is None:
        return "Loading..."
    if not track.is_playing:
        return "Not playing"
    return f"{track.title} - {track.artist}"


def view_payload(view: BarViewState, clock: str, now: Optional[float] = None) -> Dict[str, Any]:
    """JSON-ready snapshot of a bar for the eww widgets."""
    banner = view.visible_banner(now)
    return {
        "display": view.display,
        "loading": view.loading,
        "error": view.error,
        "banner": banner.message if banner else None,
        "workspaces": [
            {"id": ws.id, "active": view.is_active(ws)} for ws in view.workspaces
        ],
        "window": view.active_window.to_payload() if view.active_window else None,
        "window_label": view.active_window.label if view.active_window else None,
        "media": view.media.to_payload() if view.media else None,
        "media_label": media_label(view.media),
        "battery": (
            {**view.power.to_payload(), "icon": battery_icon(view.power)}
            if view.power else None
        ),
        "network": (
            {**view.network.to_payload(), "icon": wifi_icon(view.network)}
            if view.network else None
        ),
        "clock": clock,
    }


def render_text(view: BarViewState, clock: str, now: Optional[float] = None) -> Text:
    """One-line rich rendering of a bar for terminal output."""
    line = Text()
    line.append(f"[{view.display}] ", style="dim")

    banner = view.visible_banner(now)
    if banner:
        line.append(f"Error: {banner.message} ", style="bold white on red")

    if view.loading:
        line.append("Loading workspaces... ", style="italic")
    elif view.error:
        line.append(f"{view.error} ", style="red")
        line.append("[Retry] ", style="bold")
    elif not view.workspaces:
        line.append("No workspaces found ", style="yellow")
    else:
        for ws in view.workspaces:
            if view.is_active(ws):
                line.append(f" {ws.id} ", style="bold black on cyan")
            else:
                line.append(f" {ws.id} ", style="cyan")
        line.append(" ")

    if view.active_window:
        line.append(f"{view.active_window.label}  ", style="bold")

    playing = view.media is not None and view.media.is_playing
    line.append(f"{MEDIA_ICON} {media_label(view.media)}  ", style="green" if playing else "dim")

    if view.network is not None:
        line.append(f"{wifi_icon(view.network)}  ")
    if view.power is not None:
        line.append(f"{battery_icon(view.power)} {view.power.level_percent}%  ")
    line.append(clock)
    return line
