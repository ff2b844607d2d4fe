"""
Configuration models and data structures.

This module defines the configuration models used by the command line and the
application factory, providing type safety and validation for configuration
values.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from ...core.domain.settings import DiagnosticsConfig, ReconnectConfig
from ...core.exceptions import ConfigurationError


@dataclass
class TransportConfig:
    """WebSocket transport configuration."""
    headers: Dict[str, str] = field(default_factory=dict)
    max_size: Optional[int] = 2**20  # 1MB
    ping_interval: Optional[float] = 20.0
    ping_timeout: Optional[float] = 20.0
    close_timeout: float = 10.0


@dataclass
class AuthorizationConfig:
    """HTTP authorization gate configuration."""
    enabled: bool = False
    url: Optional[str] = None
    method: str = "POST"
    headers: Dict[str, str] = field(default_factory=dict)
    payload: Optional[Dict[str, Any]] = None
    timeout: float = 10.0


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_directory: str = "logs"
    max_file_size: str = "10MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = False


@dataclass
class ApplicationConfig:
    """Main application configuration."""

    # Basic application settings
    name: str = "resocket"
    version: str = "0.1.0"

    # Connection target
    address: Optional[str] = None
    subprotocols: List[str] = field(default_factory=list)

    # Component configurations
    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    authorization: AuthorizationConfig = field(default_factory=AuthorizationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Additional settings
    config_file_path: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.validate()

    def validate(self) -> None:
        """
        Check every value, including ones changed after construction.

        Raises:
            ConfigurationError: On the first invalid value.
        """
        self._validate_timeouts()
        self._validate_authorization()
        self._validate_logging()

    def _validate_timeouts(self) -> None:
        """Validate timeout values."""
        timeouts = [
            ("Open timeout", self.reconnect.open_timeout),
            ("Transport close timeout", self.transport.close_timeout),
            ("Authorization timeout", self.authorization.timeout),
        ]

        for name, timeout in timeouts:
            if timeout <= 0:
                raise ConfigurationError(f"{name} must be positive, got {timeout}")

        if self.reconnect.reconnect_delay < 0:
            raise ConfigurationError(
                f"Reconnect delay must not be negative, got {self.reconnect.reconnect_delay}")

    def _validate_authorization(self) -> None:
        """Validate the authorization gate settings."""
        if self.authorization.enabled and not self.authorization.url:
            raise ConfigurationError("Authorization is enabled but no URL is configured")

    def _validate_logging(self) -> None:
        """Validate logging level."""
        valid_levels = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        if self.logging.level.upper() not in valid_levels:
            raise ConfigurationError(f"Invalid log level: {self.logging.level}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ApplicationConfig':
        """Create configuration from dictionary."""
        try:
            # Extract nested configurations
            reconnect_config = ReconnectConfig(**data.get('reconnect', {}))
            diagnostics_config = DiagnosticsConfig(**data.get('diagnostics', {}))
            transport_config = TransportConfig(**data.get('transport', {}))
            authorization_config = AuthorizationConfig(**data.get('authorization', {}))
            logging_config = LoggingConfig(**data.get('logging', {}))
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

        # Create main configuration
        return cls(
            name=data.get('name', 'resocket'),
            version=data.get('version', '0.1.0'),
            address=data.get('address'),
            subprotocols=list(data.get('subprotocols') or []),
            reconnect=reconnect_config,
            diagnostics=diagnostics_config,
            transport=transport_config,
            authorization=authorization_config,
            logging=logging_config,
            config_file_path=data.get('config_file_path')
        )
