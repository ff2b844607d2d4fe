"""
Cancellable timers for the connection manager.

Every delayed callback the manager schedules goes through a ``Timer`` it owns,
so a pending firing can always be cancelled when it is superseded.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Protocol


class TimerHandle(Protocol):
    """Anything with a ``cancel`` method, e.g. ``asyncio.TimerHandle``."""

    def cancel(self) -> Any:
        ...


class IScheduler(ABC):
    """Schedules one-shot delayed callbacks."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` after ``delay`` seconds."""
        pass


class LoopScheduler(IScheduler):
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class Timer:
    """
    One-shot timer tracked by its owner.

    Starting a timer that is already pending replaces the pending firing.
    """

    def __init__(self, scheduler: IScheduler, name: str) -> None:
        self._scheduler = scheduler
        self._name = name
        self._handle: Optional[TimerHandle] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def active(self) -> bool:
        """Whether a firing is pending."""
        return self._handle is not None

    def start(self, delay: float, callback: Callable[[], None]) -> None:
        """Schedule ``callback`` after ``delay`` seconds."""
        self.cancel()
        handle: Optional[TimerHandle] = None

        def fire() -> None:
            # Only the handle that is still current may clear itself
            if self._handle is handle:
                self._handle = None
            callback()

        handle = self._scheduler.call_later(delay, fire)
        self._handle = handle

    def cancel(self) -> bool:
        """
        Cancel the pending firing.

        Returns:
            True if a firing was pending.
        """
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def __repr__(self) -> str:
        return f"Timer(name={self._name!r}, active={self.active})"
