"""Integration test fixtures.

Provides a fully wired Extension over in-memory SQLite with a short debounce
window and the FakeScraper from tests/conftest.py in place of the scrape
service.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from privacypal.config import Settings
from privacypal.extension import extension_lifespan

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from conftest import FakeScraper

    from privacypal.extension import Extension

DEBOUNCE_MS = 50


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        storage={"db_path": ":memory:"},
        watcher={"debounce_ms": DEBOUNCE_MS},
        logging={"format": "text", "level": "DEBUG"},
    )


@pytest.fixture()
async def extension(settings: Settings, scraper: FakeScraper) -> AsyncGenerator[Extension, None]:
    async with extension_lifespan(settings, scraper=scraper) as ext:
        yield ext
