"""Refresh scheduler: timer ticks and action-triggered refreshes.

Holds no data. Every tick or action emits a RefreshSignal through the
broadcast fan-out; failures of individual adapter calls never affect the
scheduler, so ticking never backs off.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Set

from ..config import IntervalConfig
from ..constants import TOPIC_MEDIA, TOPIC_NETWORK, TOPIC_POWER, TOPIC_REFRESH, TOPIC_WORKSPACES
from ..models import RefreshSignal
from .broadcast import BroadcastFanout

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Owns the periodic timers and the delayed follow-up refreshes."""

    def __init__(self, fanout: BroadcastFanout, intervals: Optional[IntervalConfig] = None) -> None:
        self.fanout = fanout
        self.intervals = intervals or IntervalConfig()
        self._tick_tasks: List[asyncio.Task] = []
        self._delayed_tasks: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return bool(self._tick_tasks)

    def timers(self) -> Dict[str, float]:
        """Topic -> interval in seconds."""
        return {
            TOPIC_WORKSPACES: self.intervals.workspace,
            TOPIC_MEDIA: self.intervals.media,
            TOPIC_POWER: self.intervals.power,
            TOPIC_NETWORK: self.intervals.network,
        }

    def start(self, defer_first: bool = False) -> None:
        """Start all timers.

        Args:
            defer_first: Catch-up mode. The first main tick is a full
                refresh-data sent after catch_up_delay so surfaces exist and
                are subscribed; otherwise it is sent after one interval.
        """
        if self.running:
            logger.debug("Scheduler already running")
            return

        for topic, interval in self.timers().items():
            first_delay, first_topic = interval, topic
            if topic == TOPIC_WORKSPACES and defer_first:
                first_delay, first_topic = self.intervals.catch_up_delay, TOPIC_REFRESH
            task = asyncio.create_task(
                self._tick_loop(topic, interval, first_delay, first_topic),
                name=f"topbar-tick-{topic}",
            )
            self._tick_tasks.append(task)

        logger.info(
            "Scheduler started: "
            + ", ".join(f"{topic}={interval}s" for topic, interval in self.timers().items())
            + (f" (first refresh deferred {self.intervals.catch_up_delay}s)" if defer_first else "")
        )

    async def stop(self) -> None:
        """Cancel timers and pending delayed refreshes."""
        tasks = [*self._tick_tasks, *self._delayed_tasks]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tick_tasks.clear()
        self._delayed_tasks.clear()
        logger.info("Scheduler stopped")

    async def _tick_loop(self, topic: str, interval: float, first_delay: float, first_topic: str) -> None:
        await asyncio.sleep(first_delay)
        self.emit(first_topic)
        while True:
            await asyncio.sleep(interval)
            self.emit(topic)

    def emit(self, topic: str = TOPIC_REFRESH) -> int:
        """Send one RefreshSignal now. Returns the number of surfaces reached."""
        try:
            return self.fanout.broadcast_refresh(RefreshSignal(topic=topic))
        except Exception as e:
            logger.error(f"Failed to emit {topic} refresh: {e}", exc_info=True)
            return 0

    def refresh_now(self) -> int:
        return self.emit(TOPIC_REFRESH)

    def emit_later(self, delay: float, topic: str = TOPIC_REFRESH) -> asyncio.Task:
        """Send a RefreshSignal after delay seconds without blocking the caller."""
        task = asyncio.create_task(self._delayed_emit(delay, topic), name=f"topbar-delayed-{topic}")
        self._delayed_tasks.add(task)
        task.add_done_callback(self._delayed_tasks.discard)
        return task

    async def _delayed_emit(self, delay: float, topic: str) -> None:
        await asyncio.sleep(delay)
        self.emit(topic)

    def refresh_after_action(self) -> None:
        """Refresh immediately and again after settle_delay.

        The second signal picks up state the window manager applies
        asynchronously after a command returns.
        """
        self.emit(TOPIC_REFRESH)
        self.emit_later(self.intervals.settle_delay, TOPIC_REFRESH)
