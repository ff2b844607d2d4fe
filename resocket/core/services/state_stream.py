"""
Push stream of connection state changes for UI binding.
"""

import asyncio
from typing import AsyncIterator, Callable, List, Set

from loguru import logger

from ..domain.events import StateChange

StateListener = Callable[[StateChange], None]

# Changes kept per iterator before the oldest are dropped
DEFAULT_MAX_PENDING = 64


class StateStream:
    """Fan-out of ``StateChange`` records to listeners and async iterators."""

    def __init__(self) -> None:
        self._listeners: List[StateListener] = []
        self._queues: Set["asyncio.Queue[StateChange]"] = set()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A callable that removes the listener again.
        """
        if listener not in self._listeners:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(listener)

        return unsubscribe

    def unsubscribe(self, listener: StateListener) -> bool:
        if listener in self._listeners:
            self._listeners.remove(listener)
            return True
        return False

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners) + len(self._queues)

    def publish(self, change: StateChange) -> None:
        """Deliver a change to every listener and iterator."""
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                logger.error(f"State listener error: {type(e).__name__}: {e}")

        for queue in self._queues:
            if queue.full():
                queue.get_nowait()
                logger.debug("State iterator is behind, dropped oldest change")
            queue.put_nowait(change)

    async def changes(self, max_pending: int = DEFAULT_MAX_PENDING) -> AsyncIterator[StateChange]:
        """
        Iterate over state changes as they happen.

        Only changes published after iteration starts are yielded. A consumer
        that falls more than ``max_pending`` changes behind loses the oldest.
        """
        queue: "asyncio.Queue[StateChange]" = asyncio.Queue(maxsize=max(1, max_pending))
        self._queues.add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._queues.discard(queue)
