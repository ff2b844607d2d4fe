"""
Settings consumed directly by the connection manager.

``DiagnosticsConfig`` is the process-wide debug switch. Create one instance at
startup and hand the same instance to every manager that should follow it.
"""

from dataclasses import dataclass


@dataclass
class ReconnectConfig:
    """Per-manager timing and debug configuration."""
    reconnect_delay: float = 1.0  # seconds before retrying after a close
    open_timeout: float = 2.0  # seconds allowed for one attempt to open
    debug: bool = False

    def __post_init__(self) -> None:
        if self.reconnect_delay < 0:
            raise ValueError(
                f"reconnect_delay must not be negative, got {self.reconnect_delay}")
        if self.open_timeout <= 0:
            raise ValueError(
                f"open_timeout must be positive, got {self.open_timeout}")


@dataclass
class DiagnosticsConfig:
    """Shared debug settings; ``debug_all`` turns on tracing for every manager."""
    debug_all: bool = False
