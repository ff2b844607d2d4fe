"""
resocket - self-reconnecting persistent connections.

This package wraps a raw bidirectional message socket and presents a stable
logical connection that re-establishes itself after unexpected disconnects,
with a watchdog for stalled attempts and an optional authorization gate.
"""

__version__ = "0.1.0"

# Public API exports
from .core.domain.events import ConnectionState, CloseInfo, StateChange
from .core.domain.settings import ReconnectConfig, DiagnosticsConfig
from .core.exceptions import (
    ResocketError, NotConnected, AlreadyConnected, AuthorizationError, ConfigurationError
)
from .core.interfaces.transport import ITransport, ITransportFactory, ITransportListener
from .core.interfaces.authorization import IAuthorizationGate
from .core.services.connection_manager import ConnectionManager, ConnectionMetrics

__all__ = [
    "ConnectionState",
    "CloseInfo",
    "StateChange",
    "ReconnectConfig",
    "DiagnosticsConfig",
    "ResocketError",
    "NotConnected",
    "AlreadyConnected",
    "AuthorizationError",
    "ConfigurationError",
    "ITransport",
    "ITransportFactory",
    "ITransportListener",
    "IAuthorizationGate",
    "ConnectionManager",
    "ConnectionMetrics",
]
