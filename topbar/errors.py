"""Adapter error taxonomy.

Errors are exceptions so adapters can raise them internally, but they cross the
adapter boundary as values inside a FetchResult, never as raised exceptions.
"""

from typing import Any, Dict, List, Optional


class AdapterError(Exception):
    """Base class for failures of an external source adapter."""

    kind = "AdapterError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def details(self) -> Dict[str, Any]:
        return {}

    def to_payload(self) -> Dict[str, Any]:
        """JSON shape returned to command-surface callers."""
        return {"error": {"kind": self.kind, "message": self.message, **self.details()}}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AdapterError):
            return NotImplemented
        return type(self) is type(other) and self.to_payload() == other.to_payload()

    def __hash__(self) -> int:
        return hash((type(self), self.message))


class BinaryNotFound(AdapterError):
    """External binary could not be located on any search path."""

    kind = "BinaryNotFound"

    def __init__(self, binary: str, searched: Optional[List[str]] = None) -> None:
        super().__init__(f"Command '{binary}' not found. Ensure it is installed and in PATH.")
        self.binary = binary
        self.searched = list(searched or [])

    def details(self) -> Dict[str, Any]:
        return {"binary": self.binary}


class ProcessError(AdapterError):
    """External process exited with a non-zero status."""

    kind = "ProcessError"

    def __init__(self, exit_code: int, stderr: str, command: str = "") -> None:
        stderr = stderr.strip()
        super().__init__(f"Process exited with code {exit_code}: {stderr}")
        self.exit_code = exit_code
        self.stderr = stderr
        self.command = command

    def details(self) -> Dict[str, Any]:
        return {"exit_code": self.exit_code, "stderr": self.stderr}


class ParseError(AdapterError):
    """External process output could not be parsed into the expected shape."""

    kind = "ParseError"

    def __init__(self, raw: str, reason: str = "unparsable output") -> None:
        super().__init__(f"Failed to parse output ({reason}): {raw[:200]!r}")
        self.raw = raw
        self.reason = reason

    def details(self) -> Dict[str, Any]:
        return {"raw": self.raw[:200]}


class ProbeTimeout(AdapterError):
    """A bounded-timeout call did not finish in time."""

    kind = "ProbeTimeout"

    def __init__(self, target: str, timeout: float) -> None:
        super().__init__(f"{target} timed out after {timeout}s")
        self.target = target
        self.timeout = timeout

    def details(self) -> Dict[str, Any]:
        return {"target": self.target, "timeout": self.timeout}


class ScriptError(AdapterError):
    """An OS scripting call failed."""

    kind = "ScriptError"

    def __init__(self, detail: str) -> None:
        super().__init__(f"Script failed: {detail.strip()}")
        self.detail = detail.strip()

    def details(self) -> Dict[str, Any]:
        return {"detail": self.detail}
