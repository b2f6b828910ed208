"""Scrape service entrypoint.

Serves ``GET /scrape?url=`` for content watchers: renders the candidate
policy page through a PageRenderer, cleans the text and, when a
PolicyAnalyzer is configured, attaches its scores. Rendering with a headless
browser and LLM scoring are external collaborators plugged in through the
two protocols below.
"""

from __future__ import annotations

import asyncio
import re
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

import httpx
import structlog
import uvicorn
from bs4 import BeautifulSoup
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from privacypal import __version__
from privacypal.config import Settings
from privacypal.logs import setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request

    from privacypal.models.analysis import AnalysisResult

log = structlog.get_logger()

_WHITESPACE_RE = re.compile(r"\s+")
_NON_CONTENT_TAGS = ("script", "style", "noscript", "template")


class PageRenderer(Protocol):
    """Turns a URL into the page's visible text."""

    async def render_text(self, url: str) -> str: ...


class PolicyAnalyzer(Protocol):
    """Scores privacy policy text."""

    async def analyze(self, content: str) -> AnalysisResult: ...


def clean_text(text: str) -> str:
    """Collapse all whitespace runs to single spaces and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def extract_visible_text(html: str) -> str:
    """Return the body text of an HTML document without script/style content."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_NON_CONTENT_TAGS):
        tag.decompose()
    root = soup.body or soup
    return root.get_text("\n")


class StaticPageRenderer:
    """Fetches raw HTML with httpx; no JavaScript execution."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def render_text(self, url: str) -> str:
        response = await self._client.get(url)
        response.raise_for_status()
        return extract_visible_text(response.text)


def build_render_client(settings: Settings) -> httpx.AsyncClient:
    """Create the renderer's httpx client. Called once at startup."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(settings.server.render_timeout_seconds),
        headers={"User-Agent": f"privacypal-scraper/{__version__}"},
    )


def create_app(
    settings: Settings | None = None,
    *,
    renderer: PageRenderer | None = None,
    analyzer: PolicyAnalyzer | None = None,
) -> Starlette:
    """Build the scrape service. Without a renderer, a StaticPageRenderer is created."""
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        client: httpx.AsyncClient | None = None
        if renderer is None:
            client = build_render_client(settings)
            app.state.renderer = StaticPageRenderer(client)
        log.info("scrape_service_starting", version=__version__, analyzer=analyzer is not None)
        try:
            yield
        finally:
            if client is not None:
                await client.aclose()
            log.info("scrape_service_stopping")

    def _renderer_for(request: Request) -> PageRenderer:
        return renderer if renderer is not None else request.app.state.renderer

    async def scrape(request: Request) -> JSONResponse:
        url = request.query_params.get("url")
        if not url:
            return JSONResponse({"error": "URL parameter is required"}, status_code=400)

        request_log = log.bind(url=url)
        try:
            raw_text = await asyncio.wait_for(
                _renderer_for(request).render_text(url),
                timeout=settings.server.render_timeout_seconds,
            )
            content = clean_text(raw_text)
            body: dict = {"url": url, "content": content}

            if analyzer is not None:
                analysis = await analyzer.analyze(content[: settings.analyzer.max_content_chars])
                body["analysis"] = {
                    "summary": analysis.model_dump(mode="json"),
                    "analyzed_at": datetime.now(UTC).isoformat(),
                }
                body["message"] = "Privacy policy analyzed"
        except Exception as exc:
            request_log.error("scrape_failed", exc_info=True)
            return JSONResponse(
                {"error": "Failed to scrape privacy policy", "message": str(exc)},
                status_code=500,
            )

        request_log.info("scrape_served", content_length=len(content))
        return JSONResponse(body)

    return Starlette(
        routes=[Route("/scrape", scrape, methods=["GET"])],
        middleware=[
            # Content scripts call from arbitrary page origins
            Middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["GET"]),
        ],
        lifespan=lifespan,
    )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    setup_logging(settings)
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


if __name__ == "__main__":
    main()
