"""topbar - per-monitor status bar daemon for the AeroSpace window manager.

This package provides:
- Source adapters for workspaces, windows, media, battery and Wi-Fi
- A refresh scheduler with timer and action-triggered refreshes
- Broadcast of refresh signals to one bar surface per display
- An error channel and a JSON-RPC control socket
"""

__version__ = "0.1.0"
__author__ = "topbar contributors"
__license__ = "MIT"

__all__ = ["__version__", "__author__", "__license__"]
