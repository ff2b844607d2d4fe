"""
HTTP authorization gate.

Performs a credential check against an HTTP endpoint before each connection
attempt. Any 2xx response authorizes the attempt.
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp
from loguru import logger

from ...core.exceptions import AuthorizationError
from ...core.interfaces.authorization import IAuthorizationGate
from ..config.models import AuthorizationConfig


class HttpAuthorizationGate(IAuthorizationGate):
    """Authorizes connection attempts with an HTTP request."""

    def __init__(
        self,
        url: str,
        method: str = "POST",
        headers: Optional[Dict[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None,
        timeout: float = 10.0
    ) -> None:
        self._url = url
        self._method = method.upper()
        self._headers = dict(headers or {})
        self._payload = payload
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: AuthorizationConfig) -> 'HttpAuthorizationGate':
        """Create a gate from ``AuthorizationConfig``."""
        if not config.url:
            raise AuthorizationError("Authorization URL is not configured")
        return cls(
            url=config.url,
            method=config.method,
            headers=config.headers,
            payload=config.payload,
            timeout=config.timeout
        )

    @property
    def url(self) -> str:
        return self._url

    async def authorize(self) -> bool:
        timeout_config = aiohttp.ClientTimeout(total=self._timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout_config) as session:
                async with session.request(
                    self._method,
                    self._url,
                    headers=self._headers,
                    json=self._payload
                ) as response:
                    if 200 <= response.status < 300:
                        return True
                    logger.debug(
                        f"Authorization rejected by {self._url}: status {response.status}")
                    return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AuthorizationError(
                f"Authorization request to {self._url} failed: {type(e).__name__}: {e}") from e
