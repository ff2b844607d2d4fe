"""
Exception hierarchy for the connection manager.

Only ``NotConnected`` and ``AlreadyConnected`` ever reach a caller directly;
everything else is handled inside the manager and reported through callbacks
or retried.
"""

from enum import Enum
from typing import Optional


class ErrorLevel(Enum):
    """Error level definitions"""
    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


class ResocketError(Exception):
    """Base class for all resocket exceptions"""

    def __init__(self, message: str, error_code: Optional[str] = "", level: ErrorLevel = ErrorLevel.ERROR):
        self.message = message
        self.error_code = error_code
        self.level = level
        super().__init__(self.message)


class NotConnected(ResocketError):
    """Raised by send() when no transport handle is live."""

    def __init__(self, message: str = "Pausing to reconnect: no live transport"):
        super().__init__(message, "NOT_CONNECTED", ErrorLevel.WARNING)


class AlreadyConnected(ResocketError):
    """Raised by connect() while a transport handle is still open or pending."""

    def __init__(self, message: str = "A transport is already open or opening"):
        super().__init__(message, "ALREADY_CONNECTED", ErrorLevel.WARNING)


class AuthorizationError(ResocketError):
    """Authorization gate could not complete its check"""

    def __init__(self, message: str):
        super().__init__(message, "AUTHORIZATION_ERROR", ErrorLevel.WARNING)


class ConfigurationError(ResocketError, ValueError):
    """Invalid configuration value or file"""

    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR", ErrorLevel.ERROR)
