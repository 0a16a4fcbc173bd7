"""Async subprocess execution and binary lookup for source adapters.

Every external command goes through CommandRunner so tests can swap in a
scripted runner instead of spawning real processes.
"""

import asyncio
import logging
import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..constants import BINARY_SEARCH_PREFIXES
from ..errors import AdapterError, BinaryNotFound, ProbeTimeout, ProcessError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Completed external command."""

    argv: List[str]
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def command(self) -> str:
        return " ".join(self.argv)

    def check(self) -> "CommandResult":
        """Raise ProcessError for a non-zero exit, otherwise return self."""
        if not self.ok:
            raise ProcessError(self.exit_code, self.stderr, self.command)
        return self


class CommandRunner:
    """Run external commands without blocking the event loop."""

    async def run(self, argv: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
        """Execute a command and capture its output.

        Args:
            argv: Command and arguments
            timeout: Optional timeout in seconds; the process is killed on expiry

        Returns:
            CommandResult (non-zero exits are returned, not raised)

        Raises:
            BinaryNotFound: If the executable does not exist
            ProbeTimeout: If the timeout expired
            ProcessError: If the executable could not be started
        """
        argv = list(argv)
        command = " ".join(argv)
        logger.debug(f"Subprocess call: {command}")

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise BinaryNotFound(argv[0])
        except PermissionError as e:
            raise ProcessError(126, str(e), command)
        except OSError as e:
            # Exec format error, descriptor exhaustion and the like
            raise ProcessError(126, str(e), command)

        try:
            if timeout is None:
                stdout_bytes, stderr_bytes = await process.communicate()
            else:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    process.communicate(), timeout=timeout
                )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.debug(f"Subprocess timed out after {timeout}s: {command}")
            raise ProbeTimeout(command, timeout)

        result = CommandResult(
            argv=argv,
            exit_code=process.returncode,
            stdout=stdout_bytes.decode("utf-8", errors="replace"),
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
        )
        logger.debug(f"  Return code: {result.exit_code}")
        return result


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


class BinaryResolver:
    """Locate external binaries the way a login shell would.

    Search order: common install prefixes, every directory on $PATH, then a
    login-shell `command -v` lookup. Successful lookups are cached.
    """

    def __init__(
        self,
        runner: CommandRunner,
        prefixes: Iterable[str] = BINARY_SEARCH_PREFIXES,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.runner = runner
        self.prefixes = list(prefixes)
        self.environ = os.environ if environ is None else environ
        self._cache: Dict[str, str] = {}

    def search_dirs(self) -> List[Path]:
        """Ordered, de-duplicated candidate directories."""
        path_dirs = [d for d in self.environ.get("PATH", "").split(os.pathsep) if d]
        seen = set()
        dirs = []
        for entry in [*self.prefixes, *path_dirs]:
            directory = Path(entry).expanduser()
            if directory not in seen:
                seen.add(directory)
                dirs.append(directory)
        return dirs

    def forget(self, name: str) -> None:
        self._cache.pop(name, None)

    async def resolve(self, name: str) -> str:
        """Return an absolute path for name.

        Raises:
            BinaryNotFound: If no candidate is executable
        """
        if os.sep in name:
            if _is_executable(Path(name)):
                return name
            raise BinaryNotFound(name, [name])

        cached = self._cache.get(name)
        if cached and _is_executable(Path(cached)):
            return cached

        searched = []
        for directory in self.search_dirs():
            candidate = directory / name
            searched.append(str(candidate))
            if _is_executable(candidate):
                self._cache[name] = str(candidate)
                logger.debug(f"Resolved {name} -> {candidate}")
                return str(candidate)

        resolved = await self._resolve_with_shell(name)
        if resolved:
            self._cache[name] = resolved
            logger.debug(f"Resolved {name} via login shell -> {resolved}")
            return resolved

        raise BinaryNotFound(name, searched)

    async def _resolve_with_shell(self, name: str) -> Optional[str]:
        try:
            result = await self.runner.run(["/bin/sh", "-lc", f"command -v {shlex.quote(name)}"])
        except AdapterError as e:
            logger.debug(f"Login shell lookup for {name} failed: {e}")
            return None
        candidate = result.stdout.strip().splitlines()[-1] if result.ok and result.stdout.strip() else ""
        if candidate and _is_executable(Path(candidate)):
            return candidate
        return None
