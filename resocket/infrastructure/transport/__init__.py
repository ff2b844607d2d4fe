"""
Concrete transport implementations.
"""

from .websocket import WebSocketTransport, WebSocketTransportFactory

__all__ = [
    "WebSocketTransport",
    "WebSocketTransportFactory",
]
