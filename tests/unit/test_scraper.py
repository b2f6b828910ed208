"""Unit tests for privacypal.scraper."""

from __future__ import annotations

import httpx
import pytest
import respx

from privacypal.config import ScraperSettings
from privacypal.errors import ErrorCode, PrivacyPalError
from privacypal.scraper import ScrapeClient, build_http_client

ENDPOINT = "http://scraper.test/scrape"
POLICY_URL = "https://example.com/privacy?lang=en"


class TestBuildHttpClient:
    def test_client_configuration(self) -> None:
        client = build_http_client(ScraperSettings(timeout_seconds=12))
        assert isinstance(client, httpx.AsyncClient)
        assert client.timeout.read == 12
        assert client.headers["User-Agent"] == "privacypal/1.0"


class TestScrapeClient:
    async def test_content_only_response(self) -> None:
        with respx.mock:
            route = respx.get(ENDPOINT).mock(
                return_value=httpx.Response(200, json={"url": POLICY_URL, "content": "We care."})
            )
            async with httpx.AsyncClient() as client:
                result = await ScrapeClient(client, ENDPOINT).fetch(POLICY_URL)

            assert result.content == "We care."
            assert result.analysis is None
            assert route.calls.last.request.url.params["url"] == POLICY_URL

    async def test_analysis_response(self, analysis_payload: dict) -> None:
        with respx.mock:
            respx.get(ENDPOINT).mock(
                return_value=httpx.Response(
                    200,
                    json={
                        "url": POLICY_URL,
                        "content": "We care.",
                        "analysis": {
                            "summary": analysis_payload,
                            "analyzed_at": "2025-01-01T00:00:00Z",
                        },
                        "message": "Privacy policy analyzed",
                    },
                )
            )
            async with httpx.AsyncClient() as client:
                result = await ScrapeClient(client, ENDPOINT).fetch(POLICY_URL)

            assert result.analysis is not None
            assert result.analysis.data_collection_and_retention.score == 4
            assert result.message == "Privacy policy analyzed"

    async def test_500_raises_fetch_failed(self) -> None:
        with respx.mock:
            respx.get(ENDPOINT).mock(return_value=httpx.Response(500))
            async with httpx.AsyncClient() as client:
                with pytest.raises(PrivacyPalError) as exc_info:
                    await ScrapeClient(client, ENDPOINT).fetch(POLICY_URL)
            assert exc_info.value.code == ErrorCode.FETCH_FAILED
            assert exc_info.value.recoverable is True

    async def test_404_not_recoverable(self) -> None:
        with respx.mock:
            respx.get(ENDPOINT).mock(return_value=httpx.Response(404))
            async with httpx.AsyncClient() as client:
                with pytest.raises(PrivacyPalError) as exc_info:
                    await ScrapeClient(client, ENDPOINT).fetch(POLICY_URL)
            assert exc_info.value.code == ErrorCode.FETCH_FAILED
            assert exc_info.value.recoverable is False

    async def test_network_error_raises_fetch_failed(self) -> None:
        with respx.mock:
            respx.get(ENDPOINT).mock(side_effect=httpx.ConnectError("Connection refused"))
            async with httpx.AsyncClient() as client:
                with pytest.raises(PrivacyPalError) as exc_info:
                    await ScrapeClient(client, ENDPOINT).fetch(POLICY_URL)
            assert exc_info.value.code == ErrorCode.FETCH_FAILED
            assert exc_info.value.recoverable is True

    async def test_invalid_json_raises_fetch_failed(self) -> None:
        with respx.mock:
            respx.get(ENDPOINT).mock(return_value=httpx.Response(200, text="<html>"))
            async with httpx.AsyncClient() as client:
                with pytest.raises(PrivacyPalError) as exc_info:
                    await ScrapeClient(client, ENDPOINT).fetch(POLICY_URL)
            assert exc_info.value.code == ErrorCode.FETCH_FAILED

    async def test_missing_content_raises_fetch_failed(self) -> None:
        with respx.mock:
            respx.get(ENDPOINT).mock(return_value=httpx.Response(200, json={"url": POLICY_URL}))
            async with httpx.AsyncClient() as client:
                with pytest.raises(PrivacyPalError) as exc_info:
                    await ScrapeClient(client, ENDPOINT).fetch(POLICY_URL)
            assert exc_info.value.code == ErrorCode.FETCH_FAILED
