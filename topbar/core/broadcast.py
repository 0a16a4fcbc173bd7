"""Broadcast fan-out of refresh and error signals to bar surfaces.

The registry is an explicit object owned by the daemon and injected into the
scheduler and error channel. Delivery is a non-blocking hand-off into each
surface's mailbox; surfaces process signals in their own tasks, so there is
no ordering between surfaces.
"""

import logging
from typing import Callable, Dict, List, Optional, Protocol

from ..models import ErrorNotice, RefreshSignal

logger = logging.getLogger(__name__)


class SurfaceClosed(Exception):
    """Raised by a surface that was torn down before delivery."""


class SurfaceHandle(Protocol):
    """What the fan-out needs from a presentation surface."""

    surface_id: str

    @property
    def destroyed(self) -> bool: ...

    def deliver_refresh(self, signal: RefreshSignal) -> None: ...

    def deliver_error(self, notice: ErrorNotice) -> None: ...


class SurfaceRegistry:
    """Currently open surfaces, one per display, in registration order."""

    def __init__(self) -> None:
        self._surfaces: Dict[str, SurfaceHandle] = {}

    def register(self, handle: SurfaceHandle) -> None:
        previous = self._surfaces.get(handle.surface_id)
        if previous is not None and previous is not handle:
            logger.info(f"Replacing registered surface {handle.surface_id}")
        self._surfaces[handle.surface_id] = handle
        logger.debug(f"Registered surface {handle.surface_id} (total: {len(self._surfaces)})")

    def unregister(self, surface_id: str, handle: Optional[SurfaceHandle] = None) -> Optional[SurfaceHandle]:
        """Remove a surface. With handle given, only remove that exact handle."""
        current = self._surfaces.get(surface_id)
        if current is None or (handle is not None and current is not handle):
            return None
        del self._surfaces[surface_id]
        logger.debug(f"Unregistered surface {surface_id} (total: {len(self._surfaces)})")
        return current

    def snapshot(self) -> List[SurfaceHandle]:
        return list(self._surfaces.values())

    def live(self) -> List[SurfaceHandle]:
        return [h for h in self._surfaces.values() if not h.destroyed]

    def clear(self) -> List[SurfaceHandle]:
        removed = list(self._surfaces.values())
        self._surfaces.clear()
        return removed

    def __len__(self) -> int:
        return len(self._surfaces)

    def __contains__(self, surface_id: object) -> bool:
        return surface_id in self._surfaces


class BroadcastFanout:
    """Deliver signals to every live surface; never raises."""

    def __init__(self, registry: SurfaceRegistry) -> None:
        self.registry = registry
        self.refreshes_sent = 0
        self.errors_sent = 0

    def broadcast_refresh(self, signal: Optional[RefreshSignal] = None) -> int:
        """Send a RefreshSignal to all surfaces.

        Returns:
            Number of surfaces the signal was delivered to
        """
        signal = signal or RefreshSignal()
        delivered = self._deliver(f"{signal.topic} signal", lambda h: h.deliver_refresh(signal))
        self.refreshes_sent += 1
        return delivered

    def broadcast_error(self, notice: ErrorNotice) -> int:
        """Send an error notice to all surfaces."""
        delivered = self._deliver("error notice", lambda h: h.deliver_error(notice))
        self.errors_sent += 1
        return delivered

    def _deliver(self, what: str, deliver: Callable[[SurfaceHandle], None]) -> int:
        handles = self.registry.snapshot()
        if not handles:
            logger.debug(f"No surfaces registered for {what}")
            return 0

        delivered = 0
        for handle in handles:
            if handle.destroyed:
                logger.warning(f"Skipped destroyed surface {handle.surface_id}")
                self.registry.unregister(handle.surface_id, handle)
                continue
            try:
                deliver(handle)
                delivered += 1
            except SurfaceClosed:
                logger.warning(f"Surface {handle.surface_id} closed during delivery of {what}")
                self.registry.unregister(handle.surface_id, handle)
            except Exception as e:
                logger.error(f"Failed to deliver {what} to surface {handle.surface_id}: {e}", exc_info=True)

        logger.debug(f"Delivered {what} to {delivered}/{len(handles)} surfaces")
        return delivered
