"""
Authorization gate wrapping a plain callable.
"""

import inspect
from typing import Any, Callable

from ...core.interfaces.authorization import IAuthorizationGate


class CallbackAuthorizationGate(IAuthorizationGate):
    """Adapts a sync or async callable returning a truthy value."""

    def __init__(self, check: Callable[[], Any]) -> None:
        self._check = check

    async def authorize(self) -> bool:
        result = self._check()
        if inspect.isawaitable(result):
            result = await result
        return bool(result)
