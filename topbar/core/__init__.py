"""Core: broadcast fan-out, refresh scheduling, error channel and commands."""

from .broadcast import BroadcastFanout, SurfaceClosed, SurfaceHandle, SurfaceRegistry
from .commands import CommandSurface, SourceSet, UnknownCommand
from .error_channel import ErrorChannel
from .scheduler import RefreshScheduler

__all__ = [
    "BroadcastFanout",
    "CommandSurface",
    "ErrorChannel",
    "RefreshScheduler",
    "SourceSet",
    "SurfaceClosed",
    "SurfaceHandle",
    "SurfaceRegistry",
    "UnknownCommand",
]
