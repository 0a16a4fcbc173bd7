"""Workspace and window adapters backed by the `aerospace` CLI.

Commands:
    aerospace list-workspaces --all --json
    aerospace list-workspaces --focused --json
    aerospace list-windows --focused --json
    aerospace list-monitors --json
    aerospace workspace <id>

Success is a newline-free JSON array on stdout; failure is a non-zero exit
with text on stderr.
"""

import json
import logging
from typing import Any, Dict, List, Sequence

from pydantic import ValidationError

from ..constants import AEROSPACE_BINARY
from ..errors import ParseError
from ..models import WindowDescriptor, WorkspaceDescriptor
from .base import SourceAdapter
from .process import BinaryResolver, CommandResult, CommandRunner

logger = logging.getLogger(__name__)

LIST_ALL_WORKSPACES = ["list-workspaces", "--all", "--json"]
LIST_FOCUSED_WORKSPACE = ["list-workspaces", "--focused", "--json"]
LIST_FOCUSED_WINDOW = ["list-windows", "--focused", "--json"]
LIST_MONITORS = ["list-monitors", "--json"]


def parse_json_array(raw: str) -> List[Dict[str, Any]]:
    """Parse aerospace --json output.

    Empty output is a ParseError, not an empty list.
    """
    text = raw.strip()
    if not text:
        raise ParseError(raw, "empty output")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(raw, f"invalid JSON: {e.msg}")
    if not isinstance(data, list):
        raise ParseError(raw, "expected a JSON array")
    if not all(isinstance(item, dict) for item in data):
        raise ParseError(raw, "expected an array of objects")
    return data


def parse_workspaces(raw: str) -> List[WorkspaceDescriptor]:
    items = parse_json_array(raw)
    try:
        return [WorkspaceDescriptor.model_validate(item) for item in items]
    except ValidationError as e:
        raise ParseError(raw, f"invalid workspace entry: {e.errors()[0]['msg']}")


def parse_windows(raw: str) -> List[WindowDescriptor]:
    items = parse_json_array(raw)
    try:
        return [WindowDescriptor.model_validate(item) for item in items]
    except ValidationError as e:
        raise ParseError(raw, f"invalid window entry: {e.errors()[0]['msg']}")


class AerospaceClient:
    """Thin async wrapper around the aerospace binary."""

    def __init__(
        self,
        runner: CommandRunner,
        resolver: BinaryResolver,
        binary: str = AEROSPACE_BINARY,
    ) -> None:
        self.runner = runner
        self.resolver = resolver
        self.binary = binary

    async def run(self, args: Sequence[str]) -> CommandResult:
        """Run an aerospace subcommand and require a zero exit.

        Raises:
            BinaryNotFound: aerospace cannot be located
            ProcessError: non-zero exit
        """
        path = await self.resolver.resolve(self.binary)
        result = await self.runner.run([path, *args])
        return result.check()

    async def list_workspaces(self) -> List[WorkspaceDescriptor]:
        result = await self.run(LIST_ALL_WORKSPACES)
        return parse_workspaces(result.stdout)

    async def focused_workspace(self) -> List[WorkspaceDescriptor]:
        result = await self.run(LIST_FOCUSED_WORKSPACE)
        return parse_workspaces(result.stdout)

    async def focused_window(self) -> List[WindowDescriptor]:
        result = await self.run(LIST_FOCUSED_WINDOW)
        windows = parse_windows(result.stdout)
        if len(windows) > 1:
            logger.debug(f"aerospace reported {len(windows)} focused windows, keeping the first")
        return windows[:1]

    async def list_monitors(self) -> List[Dict[str, Any]]:
        result = await self.run(LIST_MONITORS)
        return parse_json_array(result.stdout)

    async def switch_workspace(self, workspace_id: str) -> None:
        if not workspace_id:
            raise ValueError("workspace id must not be empty")
        result = await self.run(["workspace", workspace_id])
        if result.stdout.strip():
            logger.debug(f"aerospace workspace stdout: {result.stdout.strip()}")


class WorkspaceListAdapter(SourceAdapter[List[WorkspaceDescriptor]]):
    """All workspaces, in the order aerospace reports them."""

    name = "workspaces"

    def __init__(self, client: AerospaceClient) -> None:
        self.client = client

    async def _fetch(self) -> List[WorkspaceDescriptor]:
        return await self.client.list_workspaces()


class ActiveWorkspaceAdapter(SourceAdapter[List[WorkspaceDescriptor]]):
    """Focused workspace (normally a single element)."""

    name = "active-workspace"

    def __init__(self, client: AerospaceClient) -> None:
        self.client = client

    async def _fetch(self) -> List[WorkspaceDescriptor]:
        return await self.client.focused_workspace()


class ActiveWindowAdapter(SourceAdapter[List[WindowDescriptor]]):
    """Focused window (zero or one element)."""

    name = "active-window"

    def __init__(self, client: AerospaceClient) -> None:
        self.client = client

    async def _fetch(self) -> List[WindowDescriptor]:
        return await self.client.focused_window()
