"""
Tests for the websockets-backed transport.

``websockets.asyncio.client.connect`` is patched so no network is used.
"""

import asyncio
from typing import Any, Callable, List, Optional, Tuple
from unittest.mock import AsyncMock, Mock, patch

import pytest
from websockets.exceptions import ConnectionClosedError

from resocket.core.domain.events import CloseInfo
from resocket.core.exceptions import NotConnected
from resocket.infrastructure.config.models import TransportConfig
from resocket.infrastructure.transport.websocket import (
    WebSocketTransport, WebSocketTransportFactory
)

CONNECT = 'resocket.infrastructure.transport.websocket.connect'


class FakeConnection:
    """Stand-in for ``ClientConnection``; ``None`` in the queue ends iteration."""

    def __init__(self, subprotocol: Optional[str] = None) -> None:
        self.incoming: "asyncio.Queue[Any]" = asyncio.Queue()
        self.sent: List[Any] = []
        self.close_calls: List[Tuple[int, str]] = []
        self.close_code: Optional[int] = None
        self.close_reason: Optional[str] = None
        self.subprotocol = subprotocol

    def __aiter__(self) -> "FakeConnection":
        return self

    async def __anext__(self) -> Any:
        item = await self.incoming.get()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item

    async def send(self, data: Any) -> None:
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls.append((code, reason))
        self.finish(code, reason)

    def finish(self, code: Optional[int], reason: str = "") -> None:
        if self.close_code is None:
            self.close_code = code
            self.close_reason = reason
        self.incoming.put_nowait(None)


async def _until(condition: Callable[[], bool], rounds: int = 100) -> None:
    for _ in range(rounds):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.mark.asyncio
class TestWebSocketTransport:
    """Test cases for WebSocketTransport."""

    @pytest.fixture
    def listener(self) -> Mock:
        return Mock()

    async def test_open_message_and_server_close(self, listener: Mock) -> None:
        connection = FakeConnection(subprotocol="chat")
        config = TransportConfig(headers={"X-Token": "abc"}, ping_interval=None)
        transport = WebSocketTransport("wss://example.com", ["chat"], listener, config)

        with patch(CONNECT, new=AsyncMock(return_value=connection)) as mock_connect:
            transport.open()
            await _until(lambda: listener.on_transport_open.called)

            mock_connect.assert_awaited_once()
            args, kwargs = mock_connect.call_args
            assert args == ("wss://example.com",)
            assert kwargs["subprotocols"] == ["chat"]
            assert kwargs["additional_headers"] == {"X-Token": "abc"}
            assert kwargs["ping_interval"] is None
            assert kwargs["open_timeout"] is None

            assert transport.is_open
            assert transport.subprotocol == "chat"
            listener.on_transport_open.assert_called_once_with(transport)

            connection.incoming.put_nowait("hello")
            await _until(lambda: listener.on_transport_message.called)
            listener.on_transport_message.assert_called_once_with(transport, "hello")

            connection.finish(1001, "going away")
            await _until(lambda: listener.on_transport_close.called)

        listener.on_transport_close.assert_called_once_with(
            transport, CloseInfo(code=1001, reason="going away", was_clean=True))
        assert transport.closed
        assert not transport.is_open

    async def test_send_goes_through_writer(self, listener: Mock) -> None:
        connection = FakeConnection()
        transport = WebSocketTransport("wss://example.com", [], listener)

        with patch(CONNECT, new=AsyncMock(return_value=connection)) as mock_connect:
            transport.open()
            await _until(lambda: listener.on_transport_open.called)
            assert mock_connect.call_args.kwargs["subprotocols"] is None

            transport.send("one")
            transport.send(b"two")
            await _until(lambda: len(connection.sent) == 2)

        assert connection.sent == ["one", b"two"]

    async def test_send_before_open_raises(self, listener: Mock) -> None:
        transport = WebSocketTransport("wss://example.com", [], listener)

        with pytest.raises(NotConnected):
            transport.send("early")

    async def test_connect_failure(self, listener: Mock) -> None:
        error = OSError("connection refused")
        transport = WebSocketTransport("wss://example.com", [], listener)

        with patch(CONNECT, new=AsyncMock(side_effect=error)):
            transport.open()
            await _until(lambda: listener.on_transport_close.called)

        listener.on_transport_error.assert_called_once_with(transport, error)
        listener.on_transport_open.assert_not_called()
        info = listener.on_transport_close.call_args.args[1]
        assert info.code == 1006
        assert info.was_clean is False

    async def test_close_while_connecting(self, listener: Mock) -> None:
        never = asyncio.Event()

        async def hang(*args: Any, **kwargs: Any) -> FakeConnection:
            await never.wait()
            return FakeConnection()

        transport = WebSocketTransport("wss://example.com", [], listener)

        with patch(CONNECT, new=hang):
            transport.open()
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            transport.close()
            await _until(lambda: listener.on_transport_close.called)

        listener.on_transport_open.assert_not_called()
        assert listener.on_transport_close.call_args.args[1].code == 1006

    async def test_close_before_open(self, listener: Mock) -> None:
        transport = WebSocketTransport("wss://example.com", [], listener)

        transport.close()
        transport.close()

        listener.on_transport_close.assert_called_once()
        assert transport.closed

    async def test_close_after_open(self, listener: Mock) -> None:
        connection = FakeConnection()
        transport = WebSocketTransport("wss://example.com", [], listener)

        with patch(CONNECT, new=AsyncMock(return_value=connection)):
            transport.open()
            await _until(lambda: listener.on_transport_open.called)

            transport.close(1000, "bye")
            assert not transport.is_open
            await _until(lambda: listener.on_transport_close.called)

        assert connection.close_calls == [(1000, "bye")]
        listener.on_transport_close.assert_called_once_with(
            transport, CloseInfo(code=1000, reason="bye", was_clean=True))

    async def test_abnormal_closure_reports_error(self, listener: Mock) -> None:
        connection = FakeConnection()
        transport = WebSocketTransport("wss://example.com", [], listener)

        with patch(CONNECT, new=AsyncMock(return_value=connection)):
            transport.open()
            await _until(lambda: listener.on_transport_open.called)

            connection.incoming.put_nowait(ConnectionClosedError(None, None))
            await _until(lambda: listener.on_transport_close.called)

        listener.on_transport_error.assert_called_once()
        info = listener.on_transport_close.call_args.args[1]
        assert info == CloseInfo(code=1006, reason="", was_clean=False)

    async def test_open_twice_raises(self, listener: Mock) -> None:
        transport = WebSocketTransport("wss://example.com", [], listener)

        with patch(CONNECT, new=AsyncMock(return_value=FakeConnection())):
            transport.open()
            with pytest.raises(RuntimeError):
                transport.open()
            transport.close()
            await _until(lambda: listener.on_transport_close.called)


class TestWebSocketTransportFactory:
    """Test cases for WebSocketTransportFactory."""

    def test_create(self) -> None:
        config = TransportConfig(max_size=None)
        factory = WebSocketTransportFactory(config)
        listener = Mock()

        transport = factory.create("wss://example.com", ["v1"], listener)

        assert isinstance(transport, WebSocketTransport)
        assert transport.address == "wss://example.com"
        assert factory.config is config
        assert factory.describe() == "websocket"

    def test_default_config(self) -> None:
        assert WebSocketTransportFactory().config == TransportConfig()
