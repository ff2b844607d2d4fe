"""
Self-reconnecting connection manager.

Wraps a raw message transport and presents a stable logical connection that
re-establishes itself after unexpected disconnects. The manager owns at most
one transport handle at a time, a watchdog that aborts stalled attempts and a
retry timer that restarts the chain after a close.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, List, Optional, Sequence, Set

from loguru import logger

from ..domain.events import CloseInfo, ConnectionState, StateChange
from ..domain.settings import DiagnosticsConfig, ReconnectConfig
from ..exceptions import AlreadyConnected, NotConnected
from ..interfaces.authorization import IAuthorizationGate
from ..interfaces.transport import ITransport, ITransportFactory, ITransportListener, Payload
from .state_stream import DEFAULT_MAX_PENDING, StateListener, StateStream
from .timers import IScheduler, LoopScheduler, Timer


@dataclass
class ConnectionMetrics:
    """Connection lifecycle counters."""
    attempts: int = 0
    opens: int = 0
    closes: int = 0
    timeouts: int = 0
    authorization_failures: int = 0
    messages_received: int = 0
    messages_sent: int = 0
    callback_errors: int = 0
    last_error: Optional[str] = None
    last_open_time: Optional[float] = None

    def record_error(self, error: str) -> None:
        """Record the most recent error."""
        self.last_error = error


class _Attempt:
    """One transport handle and what the manager knows about it."""

    __slots__ = ("chain", "transport", "timed_out")

    def __init__(self, chain: int, transport: ITransport) -> None:
        self.chain = chain
        self.transport = transport
        self.timed_out = False


class _TransportEvents(ITransportListener):
    """Routes transport notifications into the owning manager."""

    def __init__(self, manager: "ConnectionManager") -> None:
        self._manager = manager

    def on_transport_open(self, transport: ITransport) -> None:
        self._manager._handle_open(transport)

    def on_transport_close(self, transport: ITransport, info: CloseInfo) -> None:
        self._manager._handle_close(transport, info)

    def on_transport_message(self, transport: ITransport, payload: Payload) -> None:
        self._manager._handle_message(transport, payload)

    def on_transport_error(self, transport: ITransport, error: Exception) -> None:
        self._manager._handle_error(transport, error)


class ConnectionManager:
    """
    Persistent logical connection over a replaceable transport.

    Callers drive it with ``connect``, ``send``, ``close`` and ``refresh`` and
    observe it through the callback slots ``on_opening``, ``on_open``,
    ``on_close``, ``on_message`` and ``on_error``. Unassigned slots are no-ops.

    All work happens on the asyncio event loop; no method blocks. When an
    authorization gate is configured ``connect`` must be called from a running
    loop.
    """

    def __init__(
        self,
        transport_factory: ITransportFactory,
        config: Optional[ReconnectConfig] = None,
        diagnostics: Optional[DiagnosticsConfig] = None,
        authorization_gate: Optional[IAuthorizationGate] = None,
        scheduler: Optional[IScheduler] = None,
        name: Optional[str] = None
    ) -> None:
        config = config or ReconnectConfig()
        self.reconnect_delay = config.reconnect_delay
        self.open_timeout = config.open_timeout
        self.debug = config.debug

        self._factory = transport_factory
        self._diagnostics = diagnostics or DiagnosticsConfig()
        self._gate = authorization_gate
        self._name = name or self.__class__.__name__

        # Callback slots
        self.on_opening: Optional[Callable[[], Any]] = None
        self.on_open: Optional[Callable[[], Any]] = None
        self.on_close: Optional[Callable[[CloseInfo], Any]] = None
        self.on_message: Optional[Callable[[Payload], Any]] = None
        self.on_error: Optional[Callable[[Exception], Any]] = None

        self._state = ConnectionState.CONNECTING
        self._address: Optional[str] = None
        self._subprotocols: List[str] = []
        self._transport: Optional[ITransport] = None
        self._attempt: Optional[_Attempt] = None
        self._forced_close = False
        self._reconnecting = False
        self._opened_since_notice = False
        self._chain = 0

        scheduler = scheduler or LoopScheduler()
        self._watchdog = Timer(scheduler, "watchdog")
        self._retry = Timer(scheduler, "retry")
        self._auth_task: Optional[asyncio.Task[None]] = None
        self._tasks: Set["asyncio.Future[Any]"] = set()
        self._listener = _TransportEvents(self)
        self._states = StateStream()
        self.metrics = ConnectionMetrics()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == ConnectionState.OPEN

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def subprotocols(self) -> List[str]:
        return list(self._subprotocols)

    @property
    def forced_close(self) -> bool:
        return self._forced_close

    @property
    def reconnecting(self) -> bool:
        """Whether the current chain is a reconnect that has not opened yet."""
        return self._reconnecting

    def subscribe_state(self, listener: StateListener) -> Callable[[], None]:
        """Register a state-change listener; returns an unsubscribe callable."""
        return self._states.subscribe(listener)

    def state_changes(self, max_pending: int = DEFAULT_MAX_PENDING) -> AsyncIterator[StateChange]:
        """Async iterator over state changes from now on."""
        return self._states.changes(max_pending)

    def get_status(self) -> dict:
        """Health-style snapshot of the connection."""
        return {
            "healthy": self._state == ConnectionState.OPEN,
            "status": self._state.value,
            "details": {
                "name": self._name,
                "address": self._address,
                "subprotocols": list(self._subprotocols),
                "transport": self._factory.describe(),
                "forced_close": self._forced_close,
                "reconnecting": self._reconnecting,
                "retry_pending": self._retry.active,
                "attempt_pending": self._watchdog.active,
                "metrics": {
                    "attempts": self.metrics.attempts,
                    "opens": self.metrics.opens,
                    "closes": self.metrics.closes,
                    "timeouts": self.metrics.timeouts,
                    "authorization_failures": self.metrics.authorization_failures,
                    "messages_received": self.metrics.messages_received,
                    "messages_sent": self.metrics.messages_sent,
                    "last_error": self.metrics.last_error,
                }
            }
        }

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def connect(
        self,
        address: str,
        is_reconnect_attempt: bool = False,
        subprotocols: Optional[Sequence[str]] = None
    ) -> None:
        """
        Start a new attempt chain toward ``address``.

        Args:
            address: Endpoint to (re)connect to for the whole chain
            is_reconnect_attempt: The chain continues an earlier connection;
                failures stay silent until the first successful open
            subprotocols: Protocol negotiation tokens, reused on every retry

        Raises:
            AlreadyConnected: If a transport handle is still open or pending.
        """
        if self._transport is not None:
            raise AlreadyConnected()

        self._chain += 1
        self._forced_close = False
        self._retry.cancel()
        self._cancel_authorization()

        self._address = address
        self._subprotocols = list(subprotocols or [])
        self._reconnecting = is_reconnect_attempt
        self._opened_since_notice = False
        self._set_state(ConnectionState.CONNECTING)

        self._begin_attempt(self._chain)

    def send(self, data: Payload) -> None:
        """
        Send a frame over the live transport.

        Raises:
            NotConnected: If no transport handle exists. Nothing is buffered.
        """
        if self._transport is None:
            raise NotConnected()

        self._log("send", self._address, data)
        self._transport.send(data)
        self.metrics.messages_sent += 1

    def close(self) -> bool:
        """
        Close the connection and stop reconnecting.

        Returns:
            True if a transport close was requested, False if nothing was live.
        """
        self._forced_close = True
        self._retry.cancel()
        self._cancel_authorization()

        if self._transport is not None:
            self._transport.close()
            return True

        self._set_state(ConnectionState.CLOSED)
        return False

    def refresh(self) -> bool:
        """
        Drop the live transport and reconnect with the same parameters.

        Returns:
            True if a transport close was requested.
        """
        if self._transport is not None:
            self._transport.close()
            return True
        return False

    # ------------------------------------------------------------------
    # Attempts
    # ------------------------------------------------------------------

    def _is_current(self, chain: int) -> bool:
        return chain == self._chain and not self._forced_close

    def _begin_attempt(self, chain: int) -> None:
        if not self._is_current(chain):
            return

        if self._gate is not None:
            self._auth_task = asyncio.get_running_loop().create_task(
                self._authorize_then_open(chain))
            return

        self._open_transport(chain)

    async def _authorize_then_open(self, chain: int) -> None:
        assert self._gate is not None
        try:
            authorized = bool(await self._gate.authorize())
        except Exception as e:
            logger.warning(
                f"{self._name} authorization check failed: {type(e).__name__}: {e}")
            self.metrics.record_error(str(e))
            authorized = False
        finally:
            if self._auth_task is asyncio.current_task():
                self._auth_task = None

        # close() or a new connect() may have happened while waiting
        if not self._is_current(chain) or self._transport is not None:
            self._log("authorization-discarded", self._address)
            return

        if not authorized:
            self.metrics.authorization_failures += 1
            self._log("authorization-failed", self._address)
            self._schedule_retry(chain)
            return

        self._open_transport(chain)

    def _cancel_authorization(self) -> None:
        if self._auth_task is not None and not self._auth_task.done():
            self._auth_task.cancel()
        self._auth_task = None

    def _open_transport(self, chain: int) -> None:
        assert self._address is not None
        try:
            transport = self._factory.create(
                self._address, list(self._subprotocols), self._listener)
        except Exception as e:
            logger.error(
                f"{self._name} could not create transport: {type(e).__name__}: {e}")
            self.metrics.record_error(str(e))
            self._emit("on_error", e)
            self._schedule_retry(chain)
            return

        attempt = _Attempt(chain, transport)
        self._transport = transport
        self._attempt = attempt
        self.metrics.attempts += 1

        self._emit("on_opening")
        self._log("attempt-connect", self._address)
        self._watchdog.start(self.open_timeout, lambda: self._on_watchdog(attempt))

        try:
            transport.open()
        except Exception as e:
            self.metrics.record_error(str(e))
            self._handle_error(transport, e)
            self._handle_close(transport, CloseInfo.aborted(str(e)))

    def _on_watchdog(self, attempt: _Attempt) -> None:
        if attempt is not self._attempt:
            return
        self._log("connection-timeout", self._address)
        self.metrics.timeouts += 1
        attempt.timed_out = True
        try:
            attempt.transport.close()
        except Exception as e:
            self.metrics.record_error(str(e))
            self._handle_error(attempt.transport, e)
            self._handle_close(attempt.transport, CloseInfo.aborted(str(e)))

    def _schedule_retry(self, chain: int) -> None:
        self._retry.start(self.reconnect_delay, lambda: self._begin_attempt(chain))

    # ------------------------------------------------------------------
    # Transport events
    # ------------------------------------------------------------------

    def _handle_open(self, transport: ITransport) -> None:
        if transport is not self._transport:
            self._log("stale-open-ignored", self._address)
            return

        self._watchdog.cancel()
        self._reconnecting = False
        self._opened_since_notice = True
        self.metrics.opens += 1
        self.metrics.last_open_time = time.time()
        self._log("onopen", self._address)
        self._set_state(ConnectionState.OPEN)
        self._emit("on_open")

    def _handle_close(self, transport: ITransport, info: CloseInfo) -> None:
        if transport is not self._transport or self._attempt is None:
            self._log("stale-close-ignored", self._address)
            return

        attempt = self._attempt
        self._watchdog.cancel()
        self._transport = None
        self._attempt = None
        self.metrics.closes += 1

        if self._forced_close:
            self._log("onclose", self._address, info.code)
            self._set_state(ConnectionState.CLOSED)
            self._emit("on_close", info)
            return

        self._set_state(ConnectionState.CONNECTING)
        self._emit("on_opening")
        if self._opened_since_notice and not attempt.timed_out:
            self._opened_since_notice = False
            self._log("onclose", self._address, info.code)
            self._emit("on_close", info)

        self._schedule_retry(attempt.chain)

    def _handle_message(self, transport: ITransport, payload: Payload) -> None:
        self.metrics.messages_received += 1
        self._log("onmessage", self._address, payload)
        self._emit("on_message", payload)

    def _handle_error(self, transport: ITransport, error: Exception) -> None:
        self.metrics.record_error(str(error))
        self._log("onerror", self._address, error)
        self._emit("on_error", error)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        previous = self._state
        self._state = state
        if previous != state:
            self._log("state", f"{previous.value} -> {state.value}")
            self._states.publish(StateChange(previous, state))

    def _emit(self, slot: str, *args: Any) -> None:
        handler = getattr(self, slot)
        if handler is None:
            return

        try:
            result = handler(*args)
        except Exception as e:
            self.metrics.callback_errors += 1
            logger.error(f"{self._name} {slot} handler error: {type(e).__name__}: {e}")
            return

        if inspect.isawaitable(result):
            self._create_task(result, slot)

    def _create_task(self, awaitable: Any, slot: str) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)

        def done(finished: "asyncio.Future[Any]") -> None:
            self._tasks.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                self.metrics.callback_errors += 1
                logger.error(
                    f"{self._name} {slot} handler error: {finished.exception()!r}")

        task.add_done_callback(done)

    def _log(self, event: str, *args: Any) -> None:
        if self.debug or self._diagnostics.debug_all:
            details = " ".join(str(arg) for arg in args)
            logger.debug(f"{self._name} {event} {details}".rstrip())

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(name={self._name!r}, "
                f"state={self._state.value}, address={self._address!r})")
