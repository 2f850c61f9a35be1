"""
FPL API client.

Fetches the bootstrap-static snapshot and the fixtures list and decodes them
into typed records. Every failure (network, non-2xx, undecodable body) is
fatal for the fetch; retry policy belongs to whoever triggers the sync.
"""

import logging
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from fpl_sync.config import Config
from fpl_sync.fpl_api.models import FIXTURE_LIST, BootstrapSnapshot, FeedFixture

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
    "Referer": "https://fantasy.premierleague.com/",
}


class FPLAPIError(Exception):
    """Base exception for FPL API errors."""
    pass


class FPLAPIStatusError(FPLAPIError):
    """Raised when the FPL API answers with a non-success status."""

    def __init__(self, endpoint: str, status_code: int, body: str):
        self.endpoint = endpoint
        self.status_code = status_code
        self.body = body
        super().__init__(f"{endpoint} returned {status_code}: {body}")


class FPLAPIDecodeError(FPLAPIError):
    """Raised when a response cannot be decoded into the expected records."""
    pass


class FPLAPIClient:
    """Client for the FPL endpoints the sync reads."""

    def __init__(self, config: Config, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.base_url = config.fpl_api_base_url.rstrip("/")
        self.fixtures_future_only = config.fixtures_future_only

        self.client = client or httpx.AsyncClient(
            timeout=config.request_timeout,
            follow_redirects=True,
            headers=DEFAULT_HEADERS,
        )

    async def _get(self, endpoint: str, **kwargs) -> httpx.Response:
        """
        Issue a GET and return the response when it is a success.

        Raises:
            FPLAPIStatusError: For any non-2xx status
            FPLAPIError: On timeout or network failure
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            response = await self.client.request("GET", url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("Timeout from FPL API", extra={"endpoint": endpoint})
            raise FPLAPIError(f"Request to {endpoint} timed out") from e
        except httpx.HTTPError as e:
            logger.error("Network error from FPL API", extra={
                "endpoint": endpoint,
                "error": str(e)
            })
            raise FPLAPIError(f"Request to {endpoint} failed: {e}") from e

        if response.is_success:
            return response

        error_text = response.text[:500]  # Limit error text length
        logger.error("Error status from FPL API", extra={
            "endpoint": endpoint,
            "status_code": response.status_code,
            "error": error_text
        })
        raise FPLAPIStatusError(endpoint, response.status_code, error_text)

    def _json(self, endpoint: str, response: httpx.Response) -> Any:
        if not response.content:
            raise FPLAPIDecodeError(f"Empty response from {endpoint}")

        # An HTML page here usually means the request was blocked upstream
        content_type = response.headers.get("content-type", "").lower()
        if "text/html" in content_type:
            logger.error("API returned HTML (blocking?)", extra={
                "endpoint": endpoint,
                "status_code": response.status_code,
                "content_type": content_type
            })
            raise FPLAPIDecodeError(f"{endpoint} returned HTML instead of JSON")

        try:
            return response.json()
        except ValueError as e:
            logger.error("JSON parse failed", extra={
                "endpoint": endpoint,
                "content_length": len(response.content),
                "response_preview": response.text[:500],
                "error": str(e)
            })
            raise FPLAPIDecodeError(f"Failed to parse JSON from {endpoint}: {e}") from e

    async def fetch_snapshot(self) -> BootstrapSnapshot:
        """
        Get the bootstrap-static snapshot (teams, players, chips).

        Returns:
            Decoded snapshot

        Raises:
            FPLAPIError: On transport failure or an undecodable body
        """
        endpoint = "/bootstrap-static/"
        response = await self._get(endpoint)
        data = self._json(endpoint, response)

        try:
            snapshot = BootstrapSnapshot.model_validate(data)
        except ValidationError as e:
            logger.error("Bootstrap-static has unexpected shape", extra={
                "error_count": e.error_count(),
                "errors": e.errors(include_url=False)[:5]
            })
            raise FPLAPIDecodeError(f"Unexpected bootstrap-static shape: {e}") from e

        logger.info("Bootstrap-static fetched", extra={
            "players_count": len(snapshot.players),
            "teams_count": len(snapshot.teams),
            "chips_count": len(snapshot.chips)
        })

        return snapshot

    async def fetch_fixtures(self) -> List[FeedFixture]:
        """
        Get fixtures, only unplayed ones when FIXTURES_FUTURE_ONLY is set.

        Returns:
            List of decoded fixtures

        Raises:
            FPLAPIError: On transport failure or an undecodable body
        """
        endpoint = "/fixtures/"
        params = {"future": 1} if self.fixtures_future_only else None
        response = await self._get(endpoint, params=params)
        data = self._json(endpoint, response)

        try:
            fixtures = FIXTURE_LIST.validate_python(data)
        except ValidationError as e:
            logger.error("Fixtures have unexpected shape", extra={
                "error_count": e.error_count(),
                "errors": e.errors(include_url=False)[:5]
            })
            raise FPLAPIDecodeError(f"Unexpected fixtures shape: {e}") from e

        logger.info("Fixtures fetched", extra={
            "fixtures_count": len(fixtures)
        })

        return fixtures

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
