"""
Interfaces for the external collaborators of the connection manager.
"""

from .transport import ITransport, ITransportFactory, ITransportListener, Payload
from .authorization import IAuthorizationGate

__all__ = [
    "ITransport",
    "ITransportFactory",
    "ITransportListener",
    "Payload",
    "IAuthorizationGate",
]
