"""External source adapters."""

from .aerospace import (
    ActiveWindowAdapter,
    ActiveWorkspaceAdapter,
    AerospaceClient,
    WorkspaceListAdapter,
)
from .base import BestEffortAdapter, SourceAdapter
from .media import SpotifyAdapter
from .network import WifiAdapter
from .power import BatteryAdapter
from .process import BinaryResolver, CommandResult, CommandRunner

__all__ = [
    "ActiveWindowAdapter",
    "ActiveWorkspaceAdapter",
    "AerospaceClient",
    "BatteryAdapter",
    "BestEffortAdapter",
    "BinaryResolver",
    "CommandResult",
    "CommandRunner",
    "SourceAdapter",
    "SpotifyAdapter",
    "WifiAdapter",
    "WorkspaceListAdapter",
]
