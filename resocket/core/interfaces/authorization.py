"""
Authorization gate interface.

A gate is an asynchronous yes/no precondition that must pass before every
connection attempt. A failed check is retried by the manager; it is never
reported to the manager's caller.
"""

from abc import ABC, abstractmethod


class IAuthorizationGate(ABC):
    """Asynchronous pre-connection check."""

    @abstractmethod
    async def authorize(self) -> bool:
        """
        Check whether a connection attempt may proceed.

        Returns:
            True to proceed, False to retry later.

        Raises:
            AuthorizationError: If the check itself could not be completed.
                The manager treats this the same as returning False.
        """
        pass
