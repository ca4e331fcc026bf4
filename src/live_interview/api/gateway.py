"""
Interview service gateway.

Thin async HTTP client for the remote interview service: the ready-signal
poll, the response audio, the clip upload and the end-of-turn check.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from live_interview.config import get_settings

if TYPE_CHECKING:
    from live_interview.session.schemas import Clip

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}


class NetworkError(Exception):
    """Raised when a call to the interview service fails."""

    def __init__(self, message: str, status_code: int | None = None, url: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class InterviewGateway:
    """
    Client for the interview service HTTP contract.

    Every call raises `NetworkError` on transport failures, timeouts and
    non-2xx responses; callers decide whether that is recoverable.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            base_url: Service base URL (uses config if not provided).
            timeout: Request timeout in seconds (uses config if not provided).
            transport: Optional httpx transport, mainly for tests.
        """
        settings = get_settings()
        self._base_url = base_url or settings.api_base_url
        self._timeout = timeout or settings.request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> InterviewGateway:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise NetworkError(f"{method} {url} failed: {e!r}", url=url) from e

        if not response.is_success:
            body = response.text.strip()[:200]
            raise NetworkError(
                f"{method} {url} returned {response.status_code}: {body or response.reason_phrase}",
                status_code=response.status_code,
                url=url,
            )
        logger.debug(f"[HTTP] {method} {url} -> {response.status_code}")
        return response

    async def poll_ready(self) -> bool:
        """
        Ask whether the response for the current turn is ready.

        Returns:
            True only when the service answers with the JSON literal `true`.
        """
        response = await self._request("GET", "/question", headers=NO_CACHE_HEADERS)
        try:
            data = response.json()
        except ValueError as e:
            raise NetworkError(
                f"GET /question returned undecodable body: {response.text[:80]!r}",
                status_code=response.status_code,
                url="/question",
            ) from e
        return data is True

    async def fetch_audio(self, path: str | None = None) -> bytes:
        """Download the synthesized response audio."""
        path = path or get_settings().audio_path
        response = await self._request("GET", path, headers=NO_CACHE_HEADERS)
        return response.content

    async def upload_clip(self, clip: Clip, filename: str | None = None) -> None:
        """Upload a finalized clip as multipart field `file`."""
        filename = filename or get_settings().upload_filename
        files = {"file": (filename, clip.data, clip.mime_type)}
        await self._request("POST", "/uploadInterview", files=files)
        logger.info(f"[HTTP] uploaded clip bytes={clip.size} name={filename}")

    async def check(self, uploaded_filename: str) -> None:
        """Finalize server-side turn state for an uploaded artifact."""
        url = f"/check/{quote(uploaded_filename, safe='')}"
        await self._request("POST", url)
        logger.info(f"[HTTP] check accepted artifact={uploaded_filename}")
