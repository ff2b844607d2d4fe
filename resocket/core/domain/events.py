"""
Lifecycle domain models for the connection manager.

These are the values handed to callers: the three-valued connection state,
the description of a transport close, and the state-change record pushed to
state subscribers.
"""

import time
from dataclasses import dataclass, field
from enum import Enum

# Close code used when the transport went away without a close frame.
ABNORMAL_CLOSURE = 1006
NORMAL_CLOSURE = 1000


class ConnectionState(Enum):
    """Externally observable readiness of the logical connection."""
    CLOSED = "closed"
    CONNECTING = "connecting"
    OPEN = "open"


@dataclass(frozen=True)
class CloseInfo:
    """Details of a transport close event."""

    code: int = ABNORMAL_CLOSURE
    """Close code reported by the transport."""

    reason: str = ""
    """Close reason reported by the transport."""

    was_clean: bool = False
    """Whether the closing handshake completed."""

    @classmethod
    def aborted(cls, reason: str = "aborted") -> 'CloseInfo':
        """Close info for an attempt that never completed its handshake."""
        return cls(code=ABNORMAL_CLOSURE, reason=reason, was_clean=False)


@dataclass(frozen=True)
class StateChange:
    """A transition of ``ConnectionState``."""

    previous: ConnectionState
    current: ConnectionState
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if not isinstance(self.previous, ConnectionState) or not isinstance(self.current, ConnectionState):
            raise ValueError("State change endpoints must be ConnectionState values")
