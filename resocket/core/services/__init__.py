"""
Core services: the connection manager and its timer and state-stream facets.
"""

from .connection_manager import ConnectionManager, ConnectionMetrics
from .state_stream import StateStream
from .timers import IScheduler, LoopScheduler, Timer

__all__ = [
    "ConnectionManager",
    "ConnectionMetrics",
    "StateStream",
    "IScheduler",
    "LoopScheduler",
    "Timer",
]
