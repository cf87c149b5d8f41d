"""
Periodic broadcast of realtime metrics.

The scheduler owns no connection state. Each tick asks a producer for a
mapping of topic to payload and broadcasts every entry through the registry.
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from ..config.defaults import BroadcastParams
from ..logging.config import get_broadcast_logger
from ..models.messages import Topic
from ..utils.time import format_timestamp
from .registry import ConnectionRegistry

logger = get_broadcast_logger(__name__)

Producer = Callable[[], Awaitable[dict[str, Any]]]

SYNTHETIC_ACTIVITY = [
    {"icon": "booking", "title": "New booking", "description": "Apartamento Centro - 3 nights", "type": "booking"},
    {"icon": "message", "title": "Message sent", "description": "Automatic check-in sent", "type": "message"},
    {"icon": "key", "title": "Check-in completed", "description": "Access code used", "type": "checkin"},
    {"icon": "payment", "title": "Payment received", "description": None, "type": "payment"},
    {"icon": "sync", "title": "Sync completed", "description": "Calendars updated", "type": "sync"},
    {"icon": "lock", "title": "Lock activated", "description": "Smart lock configured", "type": "smartlock"},
]


class SyntheticMetricsProducer:
    """Plausible random metrics for demos and for exercising the broadcast path."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def activity(self) -> dict[str, Any]:
        entry = dict(self.rng.choice(SYNTHETIC_ACTIVITY))
        if entry["description"] is None:
            entry["description"] = f"{self.rng.randint(100, 599)} - Confirmed"
        return entry

    def realtime_update(self) -> dict[str, Any]:
        rng = self.rng
        timestamp = format_timestamp()
        alerts = []
        if rng.random() > 0.9:
            alerts.append({"type": "success", "message": "New booking confirmed", "timestamp": timestamp})
        return {
            "metrics": {
                "active_users": rng.randint(20, 69),
                "today_bookings": rng.randint(5, 14),
                "today_revenue": rng.randint(1000, 2999),
                "system_load": round(rng.uniform(0.1, 0.9), 2),
                "timestamp": timestamp,
            },
            "alerts": alerts,
            "activity": self.activity(),
        }

    async def __call__(self) -> dict[str, Any]:
        rng = self.rng
        return {
            Topic.DASHBOARD_METRICS.value: {
                "today_revenue": rng.randint(1000, 2999),
                "active_bookings": rng.randint(5, 19),
                "today_checkins": rng.randint(1, 8),
                "messages_sent": rng.randint(20, 69),
                "timestamp": format_timestamp(),
            },
            Topic.SYSTEM_STATUS.value: {
                "api_status": "online",
                "whatsapp_bot": "active" if rng.random() > 0.1 else "offline",
                "smart_locks": rng.randint(2, 6),
                "last_sync_minutes": rng.randint(1, 5),
            },
            Topic.ACTIVITY_FEED.value: self.activity(),
            Topic.DASHBOARD_REALTIME.value: self.realtime_update(),
        }


class LiveStatsProducer:
    """System status and the shared realtime update, built from live aggregator state."""

    def __init__(
        self,
        stats_fn: Callable[[], dict[str, Any]],
        realtime_fn: Optional[Callable[[], dict[str, Any]]] = None
    ):
        self.stats_fn = stats_fn
        self.realtime_fn = realtime_fn

    async def __call__(self) -> dict[str, Any]:
        payloads = {Topic.SYSTEM_STATUS.value: {**self.stats_fn(), "timestamp": format_timestamp()}}
        if self.realtime_fn is not None:
            payloads[Topic.DASHBOARD_REALTIME.value] = self.realtime_fn()
        return payloads


@dataclass
class ScheduledTask:
    """Handle for one running broadcast loop"""
    task: asyncio.Task
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def running(self) -> bool:
        return not self.task.done()


class BroadcastScheduler:
    """Fixed-interval producer of topic broadcasts."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        producer: Optional[Producer] = None,
        params: Optional[BroadcastParams] = None,
        interval_seconds: Optional[float] = None
    ):
        self.registry = registry
        self.params = params or BroadcastParams()
        self.producer = producer or SyntheticMetricsProducer()
        self.interval_seconds = interval_seconds if interval_seconds is not None else self.params.interval_seconds
        self.logger = logger

        self.ticks = 0
        self.skipped = 0
        self.failures = 0
        self._handle: Optional[ScheduledTask] = None

    @property
    def running(self) -> bool:
        return self._handle is not None and self._handle.running

    def start(self) -> ScheduledTask:
        """
        Start the loop on the running event loop.

        Returns the existing handle if already running.
        """
        if self._handle is not None and self._handle.running:
            return self._handle

        stop_event = asyncio.Event()
        task = asyncio.create_task(self._run(stop_event), name="broadcast-scheduler")
        self._handle = ScheduledTask(task=task, stop_event=stop_event)

        self.logger.info("Broadcast scheduler started", interval_seconds=self.interval_seconds)
        return self._handle

    async def stop(self, handle: Optional[ScheduledTask] = None) -> None:
        """Stop the loop and wait for it to exit. Safe to call more than once."""
        handle = handle or self._handle
        if handle is None:
            return

        handle.stop_event.set()
        if not handle.task.done():
            handle.task.cancel()
        try:
            await handle.task
        except asyncio.CancelledError:
            pass

        if handle is self._handle:
            self._handle = None
            self.logger.info("Broadcast scheduler stopped", ticks=self.ticks)

    async def _run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
            if stop_event.is_set():
                break

            try:
                await self.run_once()
            except Exception as e:
                self.failures += 1
                self.logger.error("Broadcast tick failed", error=str(e), error_type=type(e).__name__)

    async def run_once(self) -> dict[str, int]:
        """
        One tick: produce payloads and broadcast them.

        Returns:
            Connections reached per topic; empty when nobody is connected
        """
        self.ticks += 1

        if not len(self.registry):
            self.skipped += 1
            return {}

        payloads = await self.producer()
        reached = {}
        for topic, payload in payloads.items():
            if self.params.topics and topic not in self.params.topics:
                continue
            reached[topic] = await self.registry.broadcast(topic, payload)

        self.logger.debug("Broadcast tick", tick=self.ticks, reached=reached)
        return reached

    def stats(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "interval_seconds": self.interval_seconds,
            "ticks": self.ticks,
            "skipped": self.skipped,
            "failures": self.failures,
        }
