"""
Document retrieval for the watch cycle.

The watch service depends only on the ``Fetcher`` protocol; ``HttpFetcher``
is the httpx implementation used in production.
"""

from typing import Optional, Protocol

import httpx

from watcher.exceptions import FetchError
from utilities.logger import get_logger

logger = get_logger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36 WebsiteChangeMonitor/1.0"
)


class Fetcher(Protocol):
    """Retrieves the raw text of a target document."""

    async def fetch(self, target: str) -> str:
        """Return the document body or raise FetchError."""
        ...


class HttpFetcher:
    """
    HTTP fetcher backed by a single httpx.AsyncClient.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: Total request timeout in seconds
            user_agent: Identifying User-Agent header
            transport: Optional transport override (used in tests)
        """
        self.timeout = timeout
        self.logger = logger.bind(component="http_fetcher")

        # HTTP client configuration
        self.client_config = {
            "timeout": timeout,
            "headers": {
                "User-Agent": user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.5",
            },
            "follow_redirects": True,
        }
        if transport is not None:
            self.client_config["transport"] = transport

        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(**self.client_config)
        return self._client

    async def fetch(self, target: str) -> str:
        """
        Fetch a document.

        Args:
            target: URL to retrieve

        Returns:
            Response body as text

        Raises:
            FetchError: On transport errors, timeouts and non-2xx responses
        """
        client = self._get_client()
        try:
            response = await client.get(target)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                target,
                f"HTTP {e.response.status_code} from {target}",
                status_code=e.response.status_code
            ) from e
        except httpx.TimeoutException as e:
            raise FetchError(target, f"Timed out after {self.timeout}s fetching {target}") from e
        except httpx.HTTPError as e:
            raise FetchError(target, f"Error fetching {target}: {e}") from e

        self.logger.debug(
            "Fetched document",
            url=target,
            status_code=response.status_code,
            content_length=len(response.text)
        )
        return response.text

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
