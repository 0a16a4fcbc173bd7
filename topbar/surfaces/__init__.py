"""Presentation surfaces: one bar per display plus its renderers."""

from .renderers import ConsoleRenderer, EwwRenderer, Renderer
from .state import BarViewState, ErrorBanner
from .surface import BarSurface, SurfaceFactory

__all__ = [
    "BarSurface",
    "BarViewState",
    "ConsoleRenderer",
    "ErrorBanner",
    "EwwRenderer",
    "Renderer",
    "SurfaceFactory",
]
