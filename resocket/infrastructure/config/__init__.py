"""
Configuration management infrastructure.

This module provides configuration models and loading for the command line
and the application factory.
"""

from .models import (
    ApplicationConfig, AuthorizationConfig, LoggingConfig, TransportConfig,
    ReconnectConfig, DiagnosticsConfig
)
from .loader import ConfigLoader

__all__ = [
    "ApplicationConfig",
    "AuthorizationConfig",
    "LoggingConfig",
    "TransportConfig",
    "ReconnectConfig",
    "DiagnosticsConfig",
    "ConfigLoader",
]
