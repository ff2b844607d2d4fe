"""
Authorization gate implementations.
"""

from .http import HttpAuthorizationGate
from .callback import CallbackAuthorizationGate

__all__ = [
    "HttpAuthorizationGate",
    "CallbackAuthorizationGate",
]
