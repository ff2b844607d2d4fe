"""
Application layer: building configured connection managers.
"""

from .factory import create_connection_manager, create_authorization_gate

__all__ = [
    "create_connection_manager",
    "create_authorization_gate",
]
