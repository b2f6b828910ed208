"""Shared test fixtures for the privacypal test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite
import pytest

from privacypal.badge import BadgeController, TabBadges
from privacypal.bus import MessageBus
from privacypal.cache import PolicyCache
from privacypal.errors import ErrorCode, PrivacyPalError
from privacypal.models.analysis import AnalysisResult
from privacypal.models.policy import ScrapeResult
from privacypal.router import MessageRouter
from privacypal.storage import LocalStorage

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from privacypal.models.popup import PopupState


def _section(score: int, topic: str) -> dict:
    return {
        "score": score,
        "justification": f"{topic} is described clearly.",
        "learn_more": f"The policy explains {topic} in detail. It names retention periods.",
    }


@pytest.fixture()
def analysis_payload() -> dict:
    """Analysis JSON as produced by the scoring collaborator."""
    return {
        "data_collection_and_retention": _section(4, "data collection"),
        "data_usage": _section(3, "data usage"),
        "user_rights_and_controls": _section(5, "user rights"),
    }


@pytest.fixture()
def analysis(analysis_payload: dict) -> AnalysisResult:
    return AnalysisResult.model_validate(analysis_payload)


@pytest.fixture()
async def storage() -> AsyncGenerator[LocalStorage, None]:
    """LocalStorage over an in-memory SQLite database."""
    async with aiosqlite.connect(":memory:") as db:
        local_storage = LocalStorage(db)
        await local_storage.init_db()
        yield local_storage


@pytest.fixture()
def cache(storage: LocalStorage) -> PolicyCache:
    return PolicyCache(storage)


@pytest.fixture()
def badges() -> TabBadges:
    return TabBadges()


class FakeClock:
    """Monotonic millisecond clock controlled by the test."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def router(cache: PolicyCache, badges: TabBadges, clock: FakeClock) -> MessageRouter:
    return MessageRouter(cache, BadgeController(badges), clock=clock)


@pytest.fixture()
def bus(router: MessageRouter) -> MessageBus:
    return MessageBus(router)


class FakeScraper:
    """Scrape client double: canned results per URL, failures for the rest."""

    def __init__(self) -> None:
        self.results: dict[str, ScrapeResult] = {}
        self.calls: list[str] = []

    def add(self, url: str, content: str, analysis: dict | None = None) -> None:
        self.results[url] = ScrapeResult(url=url, content=content, analysis=analysis)

    async def fetch(self, url: str) -> ScrapeResult:
        self.calls.append(url)
        if url not in self.results:
            raise PrivacyPalError(
                code=ErrorCode.FETCH_FAILED,
                message=f"HTTP 500 fetching {url}",
                recoverable=True,
            )
        return self.results[url]


@pytest.fixture()
def scraper() -> FakeScraper:
    return FakeScraper()


class RecordingView:
    """Popup view that records every rendered state."""

    def __init__(self) -> None:
        self.states: list[PopupState] = []

    def render(self, state: PopupState) -> None:
        self.states.append(state)

    @property
    def statuses(self) -> list[str]:
        return [state.status for state in self.states]


@pytest.fixture()
def view() -> RecordingView:
    return RecordingView()
