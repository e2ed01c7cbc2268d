"""HTTP client helper."""

from typing import Any, Dict, Optional

import aiohttp

from ...core.exceptions import TransportError, UpstreamShapeError


class HTTPClient:
    """Async HTTP client wrapper.

    One instance (and its session) is shared across concurrent requests, so
    it holds no per-call state: headers are passed into every call.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30.0) -> None:
        self.base_url = base_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    def _url(self, url: str) -> str:
        # If base_url is set and url is relative, combine them
        if self.base_url and not url.startswith("http"):
            return f"{self.base_url.rstrip('/')}/{url.lstrip('/')}"
        return url

    async def post(
        self,
        url: str,
        json_body: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """POST request returning the decoded JSON body.

        Raises:
            TransportError: On connection failure, timeout, or non-2xx status
            UpstreamShapeError: If the body is not JSON
        """
        url = self._url(url)
        try:
            async with self.session.post(url, json=json_body, headers=headers) as response:
                if response.status >= 400:
                    text = await response.text()
                    raise TransportError(
                        f"query service returned {response.status}: {text[:200]}",
                        status_code=response.status,
                    )
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise UpstreamShapeError(
                        "query service returned a non-JSON body", status_code=response.status
                    ) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"query service request failed: {e}") from e
        except TimeoutError as e:
            raise TransportError("query service request timed out") from e

    async def close(self) -> None:
        """Close session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "HTTPClient":
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        await self.close()
