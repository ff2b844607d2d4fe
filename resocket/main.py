"""
Main entry point for resocket.

This module provides the command-line interface for opening a
self-reconnecting connection and managing configuration files.
"""

import asyncio
import signal
import sys
from typing import List, Optional

import typer
from loguru import logger

from .application.factory import create_connection_manager
from .core.domain.events import CloseInfo
from .core.exceptions import ConfigurationError
from .core.interfaces.transport import ITransportFactory, Payload
from .infrastructure.config.loader import ConfigLoader
from .infrastructure.config.models import ApplicationConfig
from .infrastructure.logging.setup import setup_logging

# Create CLI application
cli = typer.Typer(
    name="resocket",
    help="Self-reconnecting persistent connection client"
)


@cli.command()
def connect(
    address: Optional[str] = typer.Argument(
        None, help="Endpoint address, e.g. wss://example.com/ws"
    ),
    protocols: List[str] = typer.Option(
        [], "--protocol", "-P", help="Subprotocol to negotiate (repeatable)"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    reconnect_delay: Optional[float] = typer.Option(
        None, "--reconnect-delay", help="Seconds to wait before reconnecting"
    ),
    open_timeout: Optional[float] = typer.Option(
        None, "--open-timeout", help="Seconds allowed for a connection attempt"
    ),
    send: Optional[str] = typer.Option(
        None, "--send", "-s", help="Text to send every time the connection opens"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Trace connection lifecycle events"
    )
) -> None:
    """Connect to ADDRESS and keep the connection alive until interrupted."""

    # Load configuration
    config_loader = ConfigLoader()
    try:
        config = config_loader.load_config(config_file)
    except (ConfigurationError, FileNotFoundError) as e:
        typer.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    # Override with command line arguments
    if address:
        config.address = address
    if protocols:
        config.subprotocols = list(protocols)
    if reconnect_delay is not None:
        config.reconnect.reconnect_delay = reconnect_delay
    if open_timeout is not None:
        config.reconnect.open_timeout = open_timeout
    if log_level:
        config.logging.level = log_level.upper()
    if debug:
        config.reconnect.debug = True
        config.logging.level = "DEBUG"

    try:
        config.validate()
    except ConfigurationError as e:
        typer.echo(f"Invalid option: {e}", err=True)
        sys.exit(1)

    if not config.address:
        typer.echo("No address given on the command line or in the configuration", err=True)
        sys.exit(1)

    # Setup logging
    setup_logging(config.logging)
    logger.info(f"Connecting to {config.address}")

    try:
        asyncio.run(run_connection(config, send_text=send))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")


@cli.command()
def init_config(
    output: str = typer.Option(
        "resocket.yaml", "--output", "-o", help="Output configuration file"
    ),
    format: str = typer.Option(
        "yaml", "--format", "-f", help="Configuration format (yaml/json)"
    )
) -> None:
    """Generate a default configuration file."""

    config = ApplicationConfig()
    config_loader = ConfigLoader()

    try:
        config_loader.save_config(config, output, format)
        typer.echo(f"Default configuration saved to {output}")
    except ConfigurationError as e:
        typer.echo(f"Error saving configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
def validate_config(
    config_file: str = typer.Argument(...,
                                      help="Configuration file to validate")
) -> None:
    """Validate a configuration file."""

    config_loader = ConfigLoader()

    try:
        config = config_loader.load_config(config_file)
        typer.echo(f"Configuration file {config_file} is valid")
        typer.echo(f"Address: {config.address or '(not set)'}")
        typer.echo(
            f"Reconnect delay: {config.reconnect.reconnect_delay}s, "
            f"open timeout: {config.reconnect.open_timeout}s")
    except (ConfigurationError, FileNotFoundError) as e:
        typer.echo(f"Configuration validation failed: {e}", err=True)
        sys.exit(1)


async def run_connection(
    config: ApplicationConfig,
    send_text: Optional[str] = None,
    stop: Optional[asyncio.Event] = None,
    transport_factory: Optional[ITransportFactory] = None
) -> None:
    """
    Run a connection manager until ``stop`` is set or a signal arrives.

    Args:
        config: Application configuration with ``address`` set
        send_text: Text sent after every successful open
        stop: Event that ends the run; created when not given
        transport_factory: Overrides the websocket transport
    """
    assert config.address is not None
    stop = stop or asyncio.Event()
    closed = asyncio.Event()
    manager = create_connection_manager(config, transport_factory=transport_factory)

    def on_opening() -> None:
        typer.echo(f"[connecting] {config.address}")

    def on_open() -> None:
        typer.echo(f"[open] {config.address}")
        if send_text is not None:
            manager.send(send_text)

    def on_close(info: CloseInfo) -> None:
        typer.echo(f"[close] code={info.code} reason={info.reason!r}")
        if manager.forced_close:
            closed.set()

    def on_message(payload: Payload) -> None:
        typer.echo(payload if isinstance(payload, str) else repr(payload))

    def on_error(error: Exception) -> None:
        typer.echo(f"[error] {error}", err=True)

    manager.on_opening = on_opening
    manager.on_open = on_open
    manager.on_close = on_close
    manager.on_message = on_message
    manager.on_error = on_error

    loop = asyncio.get_running_loop()
    installed: List[int] = []
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop.set)
            installed.append(signum)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform or not in the main thread
            logger.debug(f"Signal handler for {signum} not installed")

    manager.connect(config.address, False, config.subprotocols)

    try:
        await stop.wait()
    finally:
        for signum in installed:
            loop.remove_signal_handler(signum)
        if manager.close():
            try:
                await asyncio.wait_for(closed.wait(), timeout=config.transport.close_timeout)
            except asyncio.TimeoutError:
                logger.warning("Transport did not report close in time")
        logger.info("Connection closed")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
