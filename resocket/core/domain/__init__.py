"""
Domain models for the connection lifecycle.
"""

from .events import ConnectionState, CloseInfo, StateChange, ABNORMAL_CLOSURE, NORMAL_CLOSURE
from .settings import ReconnectConfig, DiagnosticsConfig

__all__ = [
    "ConnectionState",
    "CloseInfo",
    "StateChange",
    "ABNORMAL_CLOSURE",
    "NORMAL_CLOSURE",
    "ReconnectConfig",
    "DiagnosticsConfig",
]
