"""
WebSocket transport built on the ``websockets`` asyncio client.

One ``WebSocketTransport`` is one physical connection attempt. It never
retries on its own: open timeouts and reconnects belong to the connection
manager that owns it.
"""

import asyncio
from typing import Any, Coroutine, Optional, Sequence, Set, Tuple

from loguru import logger
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedError
from websockets.typing import Subprotocol

from ...core.domain.events import ABNORMAL_CLOSURE, NORMAL_CLOSURE, CloseInfo
from ...core.exceptions import NotConnected
from ...core.interfaces.transport import ITransport, ITransportFactory, ITransportListener, Payload
from ..config.models import TransportConfig


class WebSocketTransport(ITransport):
    """Single WebSocket connection reporting to an ``ITransportListener``."""

    def __init__(
        self,
        address: str,
        subprotocols: Sequence[str],
        listener: ITransportListener,
        config: Optional[TransportConfig] = None
    ) -> None:
        self._address = address
        self._subprotocols = list(subprotocols)
        self._listener = listener
        self._config = config or TransportConfig()

        self._connection: Optional[ClientConnection] = None
        self._run_task: Optional[asyncio.Task[None]] = None
        self._connect_task: Optional[asyncio.Task[ClientConnection]] = None
        self._outgoing: "asyncio.Queue[Payload]" = asyncio.Queue()
        self._close_requested: Optional[Tuple[int, str]] = None
        self._closed = False
        self._tasks: Set[asyncio.Task[Any]] = set()

    @property
    def address(self) -> str:
        return self._address

    @property
    def is_open(self) -> bool:
        return self._connection is not None and not self._closed and self._close_requested is None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subprotocol(self) -> Optional[str]:
        """Subprotocol negotiated by the server, if any."""
        if self._connection is None:
            return None
        return self._connection.subprotocol

    def open(self) -> None:
        if self._run_task is not None:
            raise RuntimeError("Transport already opened")
        self._run_task = asyncio.get_running_loop().create_task(self._run())

    def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        if self._closed or self._close_requested is not None:
            return
        self._close_requested = (code, reason)

        if self._connection is not None:
            self._spawn(self._connection.close(code, reason))
        elif self._connect_task is not None:
            self._connect_task.cancel()
        elif self._run_task is None:
            self._report_close(CloseInfo.aborted("closed before open"))
        # else: _run has not started yet and will see the request

    def send(self, data: Payload) -> None:
        if not self.is_open:
            raise NotConnected("WebSocket transport is not open")
        self._outgoing.put_nowait(data)

    def _connect_kwargs(self) -> dict:
        connect_kwargs = {
            'subprotocols': [Subprotocol(p) for p in self._subprotocols] or None,
            'additional_headers': self._config.headers or None,
            'max_size': self._config.max_size,
            'ping_interval': self._config.ping_interval,
            'ping_timeout': self._config.ping_timeout,
            'close_timeout': self._config.close_timeout,
            # The connection manager's watchdog owns the open timeout
            'open_timeout': None,
        }
        return connect_kwargs

    async def _connect(self) -> ClientConnection:
        return await connect(self._address, **self._connect_kwargs())

    async def _run(self) -> None:
        if self._close_requested is not None:
            self._report_close(CloseInfo.aborted("closed before open"))
            return

        self._connect_task = asyncio.get_running_loop().create_task(self._connect())
        try:
            connection = await self._connect_task
        except asyncio.CancelledError:
            self._report_close(CloseInfo.aborted())
            if self._close_requested is None:
                raise
            return
        except Exception as e:
            logger.debug(f"WebSocket connect to {self._address} failed: {type(e).__name__}: {e}")
            self._listener.on_transport_error(self, e)
            self._report_close(CloseInfo.aborted(str(e)))
            return
        finally:
            self._connect_task = None

        self._connection = connection
        if self._close_requested is not None:
            code, reason = self._close_requested
            await connection.close(code, reason)
            self._report_close(self._close_info(connection))
            return

        self._listener.on_transport_open(self)
        writer = self._spawn(self._write_loop(connection))
        try:
            async for message in connection:
                self._listener.on_transport_message(self, message)
        except ConnectionClosedError as e:
            self._listener.on_transport_error(self, e)
        finally:
            writer.cancel()

        self._report_close(self._close_info(connection))

    async def _write_loop(self, connection: ClientConnection) -> None:
        while True:
            data = await self._outgoing.get()
            try:
                await connection.send(data)
            except ConnectionClosed:
                return
            except Exception as e:
                self._listener.on_transport_error(self, e)

    def _close_info(self, connection: ClientConnection) -> CloseInfo:
        code = connection.close_code
        if code is None:
            code = ABNORMAL_CLOSURE
        return CloseInfo(
            code=code,
            reason=connection.close_reason or "",
            was_clean=code != ABNORMAL_CLOSURE
        )

    def _report_close(self, info: CloseInfo) -> None:
        if self._closed:
            return
        self._closed = True
        self._listener.on_transport_close(self, info)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task: asyncio.Task[Any] = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def __repr__(self) -> str:
        return f"WebSocketTransport(address={self._address!r}, open={self.is_open})"


class WebSocketTransportFactory(ITransportFactory):
    """Creates ``WebSocketTransport`` handles sharing one ``TransportConfig``."""

    def __init__(self, config: Optional[TransportConfig] = None) -> None:
        self._config = config or TransportConfig()

    @property
    def config(self) -> TransportConfig:
        return self._config

    def create(
        self,
        address: str,
        subprotocols: Sequence[str],
        listener: ITransportListener
    ) -> ITransport:
        return WebSocketTransport(address, subprotocols, listener, self._config)

    def describe(self) -> Any:
        return "websocket"
