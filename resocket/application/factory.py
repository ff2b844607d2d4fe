"""
Wiring of connection managers from application configuration.
"""

from typing import Optional

from ..core.interfaces.authorization import IAuthorizationGate
from ..core.interfaces.transport import ITransportFactory
from ..core.services.connection_manager import ConnectionManager
from ..core.services.timers import IScheduler
from ..infrastructure.authorization.http import HttpAuthorizationGate
from ..infrastructure.config.models import ApplicationConfig, AuthorizationConfig
from ..infrastructure.transport.websocket import WebSocketTransportFactory


def create_authorization_gate(config: AuthorizationConfig) -> Optional[IAuthorizationGate]:
    """Build the configured authorization gate, or None when disabled."""
    if not config.enabled:
        return None
    return HttpAuthorizationGate.from_config(config)


def create_connection_manager(
    config: ApplicationConfig,
    transport_factory: Optional[ITransportFactory] = None,
    authorization_gate: Optional[IAuthorizationGate] = None,
    scheduler: Optional[IScheduler] = None,
    name: Optional[str] = None
) -> ConnectionManager:
    """
    Create a connection manager from configuration.

    Args:
        config: Application configuration
        transport_factory: Overrides the websocket transport
        authorization_gate: Overrides the configured HTTP gate
        scheduler: Overrides the asyncio loop scheduler
        name: Manager name used in log lines

    Returns:
        Unconnected manager; call ``connect`` to start it
    """
    factory = transport_factory or WebSocketTransportFactory(config.transport)
    gate = authorization_gate or create_authorization_gate(config.authorization)

    return ConnectionManager(
        factory,
        config=config.reconnect,
        diagnostics=config.diagnostics,
        authorization_gate=gate,
        scheduler=scheduler,
        name=name or config.name
    )
