"""HTTP client for the scraping/analysis collaborator.

All network I/O for policy content goes through a single ScrapeClient
shared across content watchers. The client receives an httpx.AsyncClient
via constructor injection; the extension lifespan owns its lifecycle.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import structlog
from pydantic import ValidationError

from privacypal.errors import ErrorCode, PrivacyPalError
from privacypal.models.policy import ScrapeResult

if TYPE_CHECKING:
    from privacypal.config import ScraperSettings

log = structlog.get_logger()


def build_http_client(settings: ScraperSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": "privacypal/1.0"},
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


class ScrapeClient:
    """Fetches a candidate policy page's content (and analysis) from the collaborator."""

    def __init__(self, client: httpx.AsyncClient, endpoint: str) -> None:
        self._client = client
        self._endpoint = endpoint

    async def fetch(self, url: str) -> ScrapeResult:
        """Request ``GET <endpoint>?url=<url>``.

        Raises PrivacyPalError(FETCH_FAILED) on network errors, non-2xx
        responses and malformed bodies.
        """
        try:
            response = await self._client.get(self._endpoint, params={"url": url})
        except httpx.HTTPError as exc:
            raise PrivacyPalError(
                code=ErrorCode.FETCH_FAILED,
                message=f"Network error fetching {url}: {exc}",
                recoverable=True,
            ) from exc

        if not response.is_success:
            raise PrivacyPalError(
                code=ErrorCode.FETCH_FAILED,
                message=f"HTTP {response.status_code} fetching {url}",
                recoverable=response.status_code >= 500,
            )

        try:
            result = ScrapeResult.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise PrivacyPalError(
                code=ErrorCode.FETCH_FAILED,
                message=f"Malformed scrape response for {url}",
                recoverable=False,
            ) from exc

        log.info(
            "scrape_complete",
            url=url,
            status_code=response.status_code,
            content_length=len(result.content),
            analysed=result.analysis is not None,
        )
        return result
