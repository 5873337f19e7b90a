"""HTTP client used by the api action dispatcher."""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import aiohttp
import structlog

logger = structlog.get_logger(__name__)

USER_AGENT = "ui-actions/0.1.0"


@dataclass
class HttpResponse:
    """Fully read response of a single request."""

    status: int
    reason: str = ""
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    async def json(self) -> Any:
        """Parse the body as JSON; an empty body parses to None."""
        if not self.text.strip():
            return None
        return json.loads(self.text)


class HttpClient(Protocol):
    """Single-request HTTP client."""

    async def request(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> HttpResponse: ...


class AiohttpClient:
    """HttpClient backed by a lazily created aiohttp session."""

    def __init__(self, timeout: float = 30) -> None:
        """Initialize the client.

        Args:
            timeout: Default total timeout per request in seconds
        """
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def request(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> HttpResponse:
        request_headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            **(headers or {}),
        }

        session = await self._get_session()

        logger.debug("Sending request", url=url, method=method)

        async with session.request(
            method=method,
            url=url,
            data=body,
            headers=request_headers,
            timeout=aiohttp.ClientTimeout(total=timeout or self.timeout),
        ) as response:
            text = await response.text()

            logger.debug("Received response", url=url, status=response.status)

            return HttpResponse(
                status=response.status,
                reason=response.reason or "",
                text=text,
            )

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
