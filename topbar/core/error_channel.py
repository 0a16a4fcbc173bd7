"""Error surface channel.

Pushes adapter failures to the presentation surfaces asynchronously, apart
from the call that produced them, since the caller and the surface showing
the error may be different subscribers.
"""

import asyncio
import logging
from typing import Dict, Optional, Set

from ..errors import AdapterError, BinaryNotFound
from ..models import ErrorNotice
from .broadcast import BroadcastFanout

logger = logging.getLogger(__name__)


class ErrorChannel:
    """Report workspace/window failures to every surface."""

    def __init__(self, fanout: BroadcastFanout) -> None:
        self.fanout = fanout
        self.last_notice: Optional[ErrorNotice] = None
        self._reported_missing: Set[str] = set()
        self._last_failure: Dict[str, str] = {}

    def report(
        self,
        operation: str,
        error: AdapterError,
        suppress_repeats: bool = True,
    ) -> Optional[ErrorNotice]:
        """Log the failure and schedule an error broadcast.

        A missing binary is reported once; later failures for the same binary
        are only logged at debug level. Any other failure that repeats the
        previous message for the same operation is logged at debug level and
        not broadcast again until recovered() is called for that operation.

        Args:
            operation: Command name shown in the notice
            error: The adapter failure
            suppress_repeats: False for user actions, which always broadcast

        Returns:
            The notice pushed, or None when suppressed
        """
        if isinstance(error, BinaryNotFound):
            if error.binary in self._reported_missing:
                logger.debug(f"{operation}: {error.binary} still missing")
                return None
            self._reported_missing.add(error.binary)
            logger.warning(f"{operation} disabled: {error.message}")
        else:
            if suppress_repeats and self._last_failure.get(operation) == error.message:
                logger.debug(f"{operation} still failing: {error.message}")
                return None
            self._last_failure[operation] = error.message
            logger.error(f"{operation} failed: {error.message}")

        notice = ErrorNotice(message=f"{operation}: {error.message}")
        self.push(notice)
        return notice

    def push(self, notice: ErrorNotice) -> None:
        """Broadcast on the next loop iteration (immediately without a loop)."""
        self.last_notice = notice
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.fanout.broadcast_error(notice)
            return
        loop.call_soon(self.fanout.broadcast_error, notice)

    def forget(self, binary: str) -> None:
        """Allow a missing binary to be reported again (e.g. after it reappeared)."""
        self._reported_missing.discard(binary)

    def recovered(self, operation: str) -> None:
        """Mark an operation healthy so its next failure is broadcast."""
        if self._last_failure.pop(operation, None) is not None:
            logger.info(f"{operation} recovered")
