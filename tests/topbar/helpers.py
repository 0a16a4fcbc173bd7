"""Test doubles shared by the topbar test suite."""

import asyncio
import os
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from topbar.adapters import BinaryResolver, CommandResult, CommandRunner
from topbar.errors import BinaryNotFound
from topbar.models import ErrorNotice, RefreshSignal
from topbar.surfaces.renderers import Renderer
from topbar.surfaces.state import BarViewState

WORKSPACES_JSON = '[{"workspace":"1"},{"workspace":"2"},{"workspace":"3"}]'
FOCUSED_WORKSPACE_JSON = '[{"workspace":"2"}]'
FOCUSED_WINDOW_JSON = '[{"window-id":4242,"window-title":"README.md","app-name":"Code"}]'
MONITORS_JSON = '[{"monitor-id":1,"monitor-name":"Built-in Retina Display"}]'
PMSET_OUTPUT = (
    "Now drawing from 'Battery Power'\n"
    " -InternalBattery-0 (id=1234)\t85%; discharging; 4:12 remaining present: true\n"
)
PING_OUTPUT = (
    "PING 1.1.1.1 (1.1.1.1): 56 data bytes\n"
    "64 bytes from 1.1.1.1: icmp_seq=0 ttl=57 time=15.2 ms\n"
)


class FakeRunner(CommandRunner):
    """CommandRunner answering from scripted responses.

    Responses are matched on the command's basename plus leading arguments;
    the longest matching prefix wins.
    """

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.timeouts: List[Optional[float]] = []
        self._scripts: Dict[Tuple[str, ...], Dict[str, Any]] = {}

    def script(
        self,
        *prefix: str,
        stdout: str = "",
        stderr: str = "",
        exit_code: int = 0,
        raises: Optional[BaseException] = None,
        delay: float = 0.0,
    ) -> None:
        self._scripts[tuple(prefix)] = {
            "stdout": stdout,
            "stderr": stderr,
            "exit_code": exit_code,
            "raises": raises,
            "delay": delay,
        }

    def calls_for(self, *prefix: str) -> List[List[str]]:
        return [c for c in self.calls if self._key(c)[: len(prefix)] == prefix]

    @staticmethod
    def _key(argv: Sequence[str]) -> Tuple[str, ...]:
        return (os.path.basename(argv[0]), *argv[1:])

    async def run(self, argv: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
        self.calls.append(list(argv))
        self.timeouts.append(timeout)
        key = self._key(argv)
        matches = [p for p in self._scripts if key[: len(p)] == p]
        if not matches:
            return CommandResult(list(argv), 1, "", f"unscripted command: {' '.join(key)}")
        entry = self._scripts[max(matches, key=len)]
        if entry["delay"]:
            await asyncio.sleep(entry["delay"])
        if entry["raises"] is not None:
            raise entry["raises"]
        return CommandResult(list(argv), entry["exit_code"], entry["stdout"], entry["stderr"])


class FakeResolver(BinaryResolver):
    """Resolver that knows every binary except the ones marked missing."""

    def __init__(self) -> None:
        super().__init__(FakeRunner(), prefixes=(), environ={})
        self.missing: Set[str] = set()
        self.lookups: List[str] = []

    async def resolve(self, name: str) -> str:
        self.lookups.append(name)
        if os.path.basename(name) in self.missing or name in self.missing:
            raise BinaryNotFound(name, ["/usr/bin"])
        if os.path.isabs(name):
            return name
        return f"/usr/bin/{name}"


class RecordingRenderer(Renderer):
    """Renderer that keeps a copy of every view it was asked to draw."""

    def __init__(self) -> None:
        super().__init__()
        self.renders: List[Tuple[str, BarViewState]] = []
        self.closed: List[str] = []

    async def render(self, surface_id: str, view: BarViewState) -> bool:
        self.renders.append((surface_id, view.model_copy(deep=True)))
        return True

    async def close(self, surface_id: str) -> None:
        self.closed.append(surface_id)

    def for_surface(self, surface_id: str) -> List[BarViewState]:
        return [view for sid, view in self.renders if sid == surface_id]


class FakeSurface:
    """Minimal surface handle recording what it receives."""

    def __init__(self, surface_id: str, destroyed: bool = False, fail_with: Optional[Exception] = None) -> None:
        self.surface_id = surface_id
        self._destroyed = destroyed
        self.fail_with = fail_with
        self.refreshes: List[RefreshSignal] = []
        self.errors: List[ErrorNotice] = []

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def destroy(self) -> None:
        self._destroyed = True

    def deliver_refresh(self, signal: RefreshSignal) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.refreshes.append(signal)

    def deliver_error(self, notice: ErrorNotice) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.errors.append(notice)


async def settle(rounds: int = 5) -> None:
    """Let queued callbacks and surface tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_until(predicate, timeout: float = 1.0, interval: float = 0.01) -> None:
    """Poll predicate until it is true; fail the test on timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met within timeout")
        await asyncio.sleep(interval)
