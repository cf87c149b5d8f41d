"""
Realtime broadcast layer: connection registry, scheduler and websocket server.
"""
from .registry import Connection, ConnectionRegistry, ConnectionState
from .scheduler import BroadcastScheduler, ScheduledTask, SyntheticMetricsProducer
from .server import RealtimeServer

__all__ = [
    "Connection",
    "ConnectionRegistry",
    "ConnectionState",
    "BroadcastScheduler",
    "ScheduledTask",
    "SyntheticMetricsProducer",
    "RealtimeServer",
]
