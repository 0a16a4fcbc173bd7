"""JSON-RPC control socket for the topbar daemon.

Newline-delimited JSON-RPC 2.0 over a Unix socket. Eww button handlers and the
CLI call the command surface through it; `subscribe` turns the connection into
a remote surface that receives `refresh-data` and `error` notifications.
"""

import asyncio
import itertools
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set

from .core.broadcast import SurfaceClosed, SurfaceRegistry
from .core.commands import CommandSurface, UnknownCommand
from .constants import SIGNAL_ERROR, SIGNAL_REFRESH
from .models import ErrorNotice, RefreshSignal
from .surfaces.surface import BarSurface

logger = logging.getLogger(__name__)


# JSON-RPC 2.0 Standard Error Codes
PARSE_ERROR = -32700       # Invalid JSON
INVALID_REQUEST = -32600   # Not valid JSON-RPC request
METHOD_NOT_FOUND = -32601  # Method doesn't exist
INVALID_PARAMS = -32602    # Invalid method parameters
INTERNAL_ERROR = -32603    # Server internal error

# Application-specific error codes
SURFACE_NOT_FOUND = 1001

# A subscriber whose unsent notifications exceed this is dropped
MAX_PENDING_BYTES = 256 * 1024


class RemoteSubscriber:
    """Control-socket client registered as a surface.

    Notifications are written without awaiting drain, so a slow client cannot
    hold up the broadcast. A client that stops reading is closed once its
    write buffer passes max_pending bytes.
    """

    def __init__(
        self,
        writer: asyncio.StreamWriter,
        surface_id: str,
        max_pending: int = MAX_PENDING_BYTES,
    ) -> None:
        self.writer = writer
        self.surface_id = surface_id
        self.max_pending = max_pending

    @property
    def destroyed(self) -> bool:
        return self.writer.is_closing()

    def deliver_refresh(self, signal: RefreshSignal) -> None:
        self._notify(SIGNAL_REFRESH, {"topic": signal.topic})

    def deliver_error(self, notice: ErrorNotice) -> None:
        self._notify(SIGNAL_ERROR, {"message": notice.message})

    def _notify(self, method: str, params: Dict[str, Any]) -> None:
        if self.writer.is_closing():
            raise SurfaceClosed(self.surface_id)
        pending = self.writer.transport.get_write_buffer_size()
        if pending > self.max_pending:
            logger.warning(
                f"Dropping subscriber {self.surface_id}: {pending} bytes unread"
            )
            self.writer.close()
            raise SurfaceClosed(self.surface_id)
        notification = {"jsonrpc": "2.0", "method": method, "params": params}
        self.writer.write(json.dumps(notification).encode() + b"\n")


class SurfaceLookupError(LookupError):
    """Raised when a request names a surface that is not open."""


class IPCServer:
    """JSON-RPC server exposing the command surface."""

    def __init__(
        self,
        commands: CommandSurface,
        registry: SurfaceRegistry,
        socket_path: Path,
        status_provider: Optional[Callable[[], Dict[str, Any]]] = None,
    ) -> None:
        """Initialize IPC server.

        Args:
            commands: CommandSurface that handles named operations
            registry: Surface registry (bar surfaces and remote subscribers)
            socket_path: Unix socket to listen on
            status_provider: Callable returning the daemon status dict
        """
        self.commands = commands
        self.registry = registry
        self.socket_path = socket_path
        self.status_provider = status_provider
        self.server: Optional[asyncio.Server] = None
        self.clients: Set[asyncio.StreamWriter] = set()
        self._subscriber_ids = itertools.count(1)

    def _error_response(self, request_id: Any, code: int, message: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Format JSON-RPC error response."""
        error: Dict[str, Any] = {"code": code, "message": message}
        if data:
            error["data"] = data
        return {"jsonrpc": "2.0", "error": error, "id": request_id}

    async def start(self) -> None:
        """Create the socket (user-only permissions) and start listening."""
        self.socket_path.parent.mkdir(parents=True, exist_ok=True)

        # Remove stale socket from a previous run
        if self.socket_path.exists():
            self.socket_path.unlink()

        self.server = await asyncio.start_unix_server(self._handle_client, path=str(self.socket_path))
        self.socket_path.chmod(0o600)
        logger.info(f"IPC server listening on {self.socket_path} (permissions: 0600)")

    async def stop(self) -> None:
        """Stop IPC server and close all connections."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            self.server = None

        for writer in list(self.clients):
            writer.close()
        self.clients.clear()

        if self.socket_path.exists():
            self.socket_path.unlink()
        logger.info("IPC server stopped")

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.clients.add(writer)
        subscriber: Optional[RemoteSubscriber] = None
        logger.debug("Client connected")

        try:
            while True:
                data = await reader.readline()
                if not data:
                    break

                try:
                    request = json.loads(data.decode())
                except json.JSONDecodeError as e:
                    logger.warning(f"JSON decode error from client: {e}")
                    response = self._error_response(None, PARSE_ERROR, "Parse error")
                else:
                    if isinstance(request, dict) and request.get("method") == "subscribe":
                        if subscriber is None:
                            subscriber = RemoteSubscriber(writer, f"ipc-{next(self._subscriber_ids)}")
                            self.registry.register(subscriber)
                            logger.info(f"Client subscribed as {subscriber.surface_id}")
                        response = {
                            "jsonrpc": "2.0",
                            "result": {"subscribed": subscriber.surface_id},
                            "id": request.get("id"),
                        }
                    else:
                        response = await self._handle_request(request)

                writer.write(json.dumps(response).encode() + b"\n")
                await writer.drain()

        except (ConnectionResetError, BrokenPipeError) as e:
            logger.debug(f"Client connection lost: {e}")
        except Exception as e:
            logger.error(f"Error handling client: {e}", exc_info=True)

        finally:
            if subscriber is not None:
                self.registry.unregister(subscriber.surface_id, subscriber)
            self.clients.discard(writer)
            writer.close()
            logger.debug("Client disconnected")

    async def _handle_request(self, request: Any) -> Dict[str, Any]:
        """Handle one JSON-RPC request and build the response."""
        if not isinstance(request, dict) or not isinstance(request.get("method"), str):
            return self._error_response(None, INVALID_REQUEST, "Invalid request")

        method = request["method"]
        params = request.get("params") or {}
        request_id = request.get("id")

        if not isinstance(params, dict):
            return self._error_response(request_id, INVALID_PARAMS, "params must be an object")

        try:
            if method == "status":
                result = self._status()
            elif method == "retry":
                result = await self._retry(params)
            elif method == "dismiss-error":
                result = await self._dismiss_error(params)
            else:
                result = await self.commands.dispatch(method, params)

            return {"jsonrpc": "2.0", "result": result, "id": request_id}

        except UnknownCommand:
            return self._error_response(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

        except SurfaceLookupError as e:
            logger.warning(f"Surface lookup failed in {method}: {e}")
            return self._error_response(request_id, SURFACE_NOT_FOUND, str(e))

        except KeyError as e:
            logger.warning(f"Missing required parameter in {method}: {e}")
            return self._error_response(
                request_id,
                INVALID_PARAMS,
                f"Missing required parameter: {e}",
                {"parameter": str(e)},
            )

        except ValueError as e:
            logger.warning(f"Invalid parameter in {method}: {e}")
            return self._error_response(request_id, INVALID_PARAMS, str(e))

        except Exception as e:
            error_type = type(e).__name__
            logger.error(f"Error handling request {method}: {error_type}: {e}", exc_info=True)
            return self._error_response(
                request_id,
                INTERNAL_ERROR,
                "Internal server error",
                {"exception": error_type, "details": str(e)},
            )

    def _status(self) -> Dict[str, Any]:
        status: Dict[str, Any] = self.status_provider() if self.status_provider else {}
        status.setdefault("surfaces", [handle.surface_id for handle in self.registry.live()])
        status.setdefault("commands", self.commands.commands)
        return status

    def _bar_surfaces(self, params: Dict[str, Any]) -> List[BarSurface]:
        """Bar surfaces addressed by params["surface"] (all when omitted)."""
        surfaces = [h for h in self.registry.live() if isinstance(h, BarSurface)]
        target = params.get("surface")
        if target is None:
            return surfaces
        matched = [s for s in surfaces if s.surface_id == target]
        if not matched:
            raise SurfaceLookupError(f"No surface named {target!r}")
        return matched

    async def _retry(self, params: Dict[str, Any]) -> Dict[str, Any]:
        surfaces = self._bar_surfaces(params)
        await asyncio.gather(*(surface.retry() for surface in surfaces))
        return {"surfaces": [surface.surface_id for surface in surfaces]}

    async def _dismiss_error(self, params: Dict[str, Any]) -> Dict[str, Any]:
        surfaces = self._bar_surfaces(params)
        await asyncio.gather(*(surface.dismiss_error() for surface in surfaces))
        return {"surfaces": [surface.surface_id for surface in surfaces]}
