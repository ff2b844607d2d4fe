"""
Shared fixtures and test doubles.

``FakeTransportFactory`` hands out transports whose events are driven by the
test, and ``ManualScheduler`` lets tests move time forward explicitly.
"""

import asyncio
from typing import Any, Callable, List, Optional, Sequence, Tuple

import pytest

from resocket.core.domain.events import ABNORMAL_CLOSURE, NORMAL_CLOSURE, CloseInfo
from resocket.core.domain.settings import DiagnosticsConfig, ReconnectConfig
from resocket.core.exceptions import NotConnected
from resocket.core.interfaces.transport import (
    ITransport, ITransportFactory, ITransportListener, Payload
)
from resocket.core.services.connection_manager import ConnectionManager
from resocket.core.services.timers import IScheduler


class ManualHandle:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(IScheduler):
    """Scheduler whose clock only moves when ``advance`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self._handles: List[ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self.now + delay, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> List[ManualHandle]:
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.pending if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self._handles.remove(handle)
            self.now = handle.when
            handle.callback()
        self.now = target


class FakeTransport(ITransport):
    """Transport whose lifecycle is driven by the test."""

    def __init__(
        self,
        address: str,
        subprotocols: Sequence[str],
        listener: ITransportListener,
        sync_close: bool = True
    ) -> None:
        self.address = address
        self.subprotocols = list(subprotocols)
        self.listener = listener
        self.sync_close = sync_close
        self.opened = False
        self.is_open = False
        self.closed = False
        self.close_requests: List[Tuple[int, str]] = []
        self.sent: List[Payload] = []

    def open(self) -> None:
        self.opened = True

    def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        self.close_requests.append((code, reason))
        if self.sync_close and not self.closed:
            self.simulate_close(code, reason)

    def send(self, data: Payload) -> None:
        if not self.is_open:
            raise NotConnected("fake transport is not open")
        self.sent.append(data)

    def simulate_open(self) -> None:
        self.is_open = True
        self.listener.on_transport_open(self)

    def simulate_close(self, code: int = ABNORMAL_CLOSURE, reason: str = "") -> None:
        self.is_open = False
        self.closed = True
        self.listener.on_transport_close(
            self, CloseInfo(code=code, reason=reason, was_clean=code != ABNORMAL_CLOSURE))

    def simulate_message(self, payload: Payload) -> None:
        self.listener.on_transport_message(self, payload)

    def simulate_error(self, error: Exception) -> None:
        self.listener.on_transport_error(self, error)


class FakeTransportFactory(ITransportFactory):
    def __init__(self, sync_close: bool = True) -> None:
        self.sync_close = sync_close
        self.created: List[FakeTransport] = []

    def create(
        self,
        address: str,
        subprotocols: Sequence[str],
        listener: ITransportListener
    ) -> ITransport:
        transport = FakeTransport(address, subprotocols, listener, self.sync_close)
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]

    @property
    def live(self) -> List[FakeTransport]:
        return [t for t in self.created if not t.closed]

    def describe(self) -> Any:
        return "fake"


class EventRecorder:
    """Records manager callbacks in order."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Any]] = []

    def attach(self, manager: ConnectionManager) -> None:
        manager.on_opening = lambda: self.events.append(("opening", None))
        manager.on_open = lambda: self.events.append(("open", None))
        manager.on_close = lambda info: self.events.append(("close", info))
        manager.on_message = lambda payload: self.events.append(("message", payload))
        manager.on_error = lambda error: self.events.append(("error", error))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def count(self, name: str) -> int:
        return self.names().count(name)

    def clear(self) -> None:
        self.events.clear()


async def drain(times: int = 5) -> None:
    """Let pending callbacks and tasks run."""
    for _ in range(times):
        await asyncio.sleep(0)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def factory() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def diagnostics() -> DiagnosticsConfig:
    return DiagnosticsConfig()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def manager(
    factory: FakeTransportFactory,
    scheduler: ManualScheduler,
    diagnostics: DiagnosticsConfig,
    recorder: EventRecorder
) -> ConnectionManager:
    manager = ConnectionManager(
        factory,
        config=ReconnectConfig(reconnect_delay=1.0, open_timeout=2.0),
        diagnostics=diagnostics,
        scheduler=scheduler,
        name="test"
    )
    recorder.attach(manager)
    return manager
