"""Async client for the topbar control socket (JSON-RPC 2.0 over Unix socket)."""

import asyncio
import json
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

from .constants import default_socket_path


class DaemonError(Exception):
    """Exception raised for daemon communication errors."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


class DaemonClient:
    """IPC client for the topbar daemon."""

    def __init__(self, socket_path: Optional[Path] = None, timeout: float = 5.0) -> None:
        """Initialize daemon client.

        Args:
            socket_path: Path to daemon Unix socket (default: $XDG_RUNTIME_DIR/topbar/ipc.sock)
            timeout: Default timeout for requests in seconds
        """
        self.socket_path = socket_path or default_socket_path()
        self.timeout = timeout
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._request_id = 0

    async def __aenter__(self) -> "DaemonClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def connect(self) -> None:
        """Connect to daemon socket.

        Raises:
            DaemonError: If connection fails
        """
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_unix_connection(str(self.socket_path)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise DaemonError(f"Connection timeout: daemon not responding at {self.socket_path}")
        except (FileNotFoundError, ConnectionRefusedError):
            raise DaemonError(
                f"Daemon socket not found: {self.socket_path}\n"
                "Is the daemon running? Start it with: topbar run"
            )
        except OSError as e:
            raise DaemonError(f"Failed to connect to daemon: {e}")

    async def close(self) -> None:
        """Close connection to daemon."""
        if self._writer:
            self._writer.close()
            try:
                await self._writer.wait_closed()
            except (ConnectionResetError, BrokenPipeError):
                pass
            self._reader = None
            self._writer = None

    async def _send(self, method: str, params: Optional[Dict[str, Any]]) -> int:
        if not self._reader or not self._writer:
            await self.connect()
        self._request_id += 1
        request = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or {},
            "id": self._request_id,
        }
        self._writer.write((json.dumps(request) + "\n").encode())
        await asyncio.wait_for(self._writer.drain(), timeout=self.timeout)
        return self._request_id

    async def _read_message(self, timeout: Optional[float]) -> Dict[str, Any]:
        line = await asyncio.wait_for(self._reader.readline(), timeout=timeout)
        if not line:
            raise DaemonError("Daemon closed the connection")
        return json.loads(line.decode())

    async def call(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Send JSON-RPC request to daemon.

        Notifications received while waiting (on a subscribed connection) are
        skipped.

        Returns:
            Response result

        Raises:
            DaemonError: If request fails or daemon returns error
        """
        try:
            request_id = await self._send(method, params)
            while True:
                response = await self._read_message(self.timeout)
                if response.get("id") == request_id:
                    break

            if "error" in response:
                error = response["error"]
                raise DaemonError(
                    f"Daemon error: {error.get('message', 'Unknown error')}",
                    code=error.get("code"),
                )
            return response.get("result")

        except asyncio.TimeoutError:
            raise DaemonError(f"Request timeout: method '{method}' took too long")
        except json.JSONDecodeError as e:
            raise DaemonError(f"Invalid JSON response from daemon: {e}")
        except (ConnectionResetError, BrokenPipeError) as e:
            raise DaemonError(f"Communication error: {e}")

    async def status(self) -> Dict[str, Any]:
        return await self.call("status")

    async def refresh(self) -> int:
        """Trigger refresh-data on every surface. Returns surfaces reached."""
        result = await self.call("refresh-data")
        return result.get("surfaces", 0)

    async def subscribe(self) -> AsyncIterator[Dict[str, Any]]:
        """Subscribe and yield `refresh-data` / `error` notifications forever."""
        await self.call("subscribe")
        while True:
            try:
                message = await self._read_message(None)
            except json.JSONDecodeError as e:
                raise DaemonError(f"Invalid JSON notification from daemon: {e}")
            if "method" in message:
                yield message
