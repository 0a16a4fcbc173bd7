"""Command-line interface for topbar.

Subcommands:
    run      Start the daemon (one bar per display)
    refresh  Ask a running daemon to refresh every surface
    status   Show daemon status
    call     Invoke a named command on the daemon
    watch    Print refresh/error notifications as JSON lines
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from . import __version__
from .config import BarConfig, load_config
from .daemon import refresh_running_daemon, run_daemon
from .daemon_client import DaemonClient, DaemonError
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

# Name of the parameter filled by `topbar call <method> <arg>`
POSITIONAL_PARAMS: Dict[str, str] = {
    "switch-space": "workspace",
    "retry": "surface",
    "dismiss-error": "surface",
}


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="topbar",
        description="Per-monitor status bar daemon for the AeroSpace window manager",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        metavar="FILE",
        help="Configuration file (default: $TOPBAR_CONFIG or ~/.config/topbar/config.json)",
    )
    parser.add_argument(
        "-s",
        "--socket",
        type=Path,
        metavar="PATH",
        help="Control socket path (default: $XDG_RUNTIME_DIR/topbar/ipc.sock)",
    )
    parser.add_argument("--version", action="version", version=f"topbar {__version__}")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    run_parser = subparsers.add_parser("run", help="Start the bar daemon")
    run_parser.add_argument(
        "--refresh",
        action="store_true",
        help="Refresh an already-running daemon instead of starting a new one",
    )
    run_parser.add_argument(
        "--console",
        action="store_true",
        help="Render bars to the terminal instead of eww",
    )
    run_parser.add_argument("--log-file", type=Path, metavar="FILE", help="Also log to this file")

    subparsers.add_parser("refresh", help="Refresh every surface of the running daemon")

    status_parser = subparsers.add_parser("status", help="Show daemon status")
    status_parser.add_argument("--json", action="store_true", help="Output raw JSON")

    call_parser = subparsers.add_parser("call", help="Invoke a command (e.g. get-spaces, switch-space 3)")
    call_parser.add_argument("method", help="Command name")
    call_parser.add_argument("arg", nargs="?", help="Command argument (workspace id, surface id)")

    subparsers.add_parser("watch", help="Print refresh/error notifications as JSON lines")

    return parser


def build_params(method: str, arg: Optional[str]) -> Dict[str, Any]:
    """Map `call <method> <arg>` to JSON-RPC params.

    Raises:
        ValueError: If an argument is given to a command that takes none
    """
    if arg is None:
        return {}
    name = POSITIONAL_PARAMS.get(method)
    if name is None:
        raise ValueError(f"Command {method!r} takes no argument")
    return {name: arg}


def render_status(status: Dict[str, Any], console: Console) -> None:
    table = Table(title="topbar", show_header=False, title_style="bold magenta")
    table.add_column("Key", style="bold cyan")
    table.add_column("Value")
    table.add_row("Status", str(status.get("status", "unknown")))
    table.add_row("PID", str(status.get("pid", "-")))
    table.add_row("Uptime", f"{status.get('uptime_seconds', 0)}s")
    displays: List[Dict[str, Any]] = status.get("displays", [])
    table.add_row(
        "Displays",
        ", ".join(d.get("monitor-name") or str(d.get("monitor-id")) for d in displays) or "-",
    )
    table.add_row("Surfaces", ", ".join(status.get("surfaces", [])) or "-")
    table.add_row("Refreshes sent", str(status.get("refreshes_sent", 0)))
    table.add_row("Errors sent", str(status.get("errors_sent", 0)))
    console.print(table)


async def _with_client(config: BarConfig, method: str, params: Dict[str, Any]) -> Any:
    async with DaemonClient(config.socket_path) as client:
        return await client.call(method, params)


async def _watch(config: BarConfig) -> int:
    async with DaemonClient(config.socket_path) as client:
        async for message in client.subscribe():
            print(json.dumps(message), flush=True)
    return 0


def cli_main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    command = args.command or "run"

    log_file = getattr(args, "log_file", None)
    setup_logging(verbose=args.verbose, debug=args.debug, log_file=log_file)

    config = load_config(args.config)
    updates: Dict[str, Any] = {}
    if args.socket:
        updates["socket_path"] = args.socket
    if getattr(args, "refresh", False):
        updates["refresh_existing"] = True
    if updates:
        config = config.model_copy(update=updates)

    console = Console()
    err_console = Console(stderr=True)

    try:
        if command == "run":
            return asyncio.run(run_daemon(config, console=getattr(args, "console", False)))

        if command == "refresh":
            surfaces = asyncio.run(refresh_running_daemon(config))
            if surfaces is None:
                err_console.print(f"[red]No topbar daemon listening on {config.socket_path}[/red]")
                return 1
            console.print(f"Refreshed {surfaces} surface(s)")
            return 0

        if command == "status":
            status = asyncio.run(_with_client(config, "status", {}))
            if args.json:
                print(json.dumps(status, indent=2))
            else:
                render_status(status, console)
            return 0

        if command == "call":
            params = build_params(args.method, args.arg)
            result = asyncio.run(_with_client(config, args.method, params))
            print(json.dumps(result, indent=2))
            if isinstance(result, dict) and "error" in result:
                return 1
            return 0

        if command == "watch":
            return asyncio.run(_watch(config))

    except DaemonError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        return 1
    except ValueError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        return 2
    except KeyboardInterrupt:
        return 130

    parser.print_help()
    return 2
