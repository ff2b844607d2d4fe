"""
Transport interfaces.

The connection manager never opens sockets itself. It asks an
``ITransportFactory`` for a handle, drives it through ``open``/``close``/``send``
and is told about its lifecycle through an ``ITransportListener``.
"""

from abc import ABC, abstractmethod
from typing import Any, Sequence, Union

from ..domain.events import CloseInfo, NORMAL_CLOSURE

Payload = Union[str, bytes]


class ITransportListener(ABC):
    """Receives the four event notifications of a transport handle."""

    @abstractmethod
    def on_transport_open(self, transport: 'ITransport') -> None:
        """The handle completed its open handshake."""
        pass

    @abstractmethod
    def on_transport_close(self, transport: 'ITransport', info: CloseInfo) -> None:
        """The handle closed. Reported at most once per handle."""
        pass

    @abstractmethod
    def on_transport_message(self, transport: 'ITransport', payload: Payload) -> None:
        """A frame was received."""
        pass

    @abstractmethod
    def on_transport_error(self, transport: 'ITransport', error: Exception) -> None:
        """An advisory error occurred. Does not imply a close."""
        pass


class ITransport(ABC):
    """A single physical connection attempt or established connection."""

    @abstractmethod
    def open(self) -> None:
        """
        Initiate the open handshake.

        Must return immediately; completion is reported through the listener.
        """
        pass

    @abstractmethod
    def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """
        Request the handle to close.

        Works in any phase, including while the handshake is still pending.
        The listener's close notification follows asynchronously.
        """
        pass

    @abstractmethod
    def send(self, data: Payload) -> None:
        """
        Send a frame.

        Raises:
            NotConnected: If the handshake has not completed or the handle closed.
        """
        pass


class ITransportFactory(ABC):
    """Produces transport handles toward an address."""

    @abstractmethod
    def create(
        self,
        address: str,
        subprotocols: Sequence[str],
        listener: ITransportListener
    ) -> ITransport:
        """Create an unopened transport handle."""
        pass

    def describe(self) -> Any:
        """Human readable description used in status output."""
        return self.__class__.__name__
