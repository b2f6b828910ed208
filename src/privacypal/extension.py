"""Extension wiring.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState inside the ``extension_lifespan`` context manager
- Open and tear down tab sessions (one content watcher each) and popups
"""

from __future__ import annotations

import itertools
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from privacypal import __version__
from privacypal.badge import BadgeController, TabBadges
from privacypal.bus import ContextPort, MessageBus
from privacypal.cache import PolicyCache
from privacypal.config import Settings
from privacypal.document import PageDocument
from privacypal.logs import setup_logging
from privacypal.popup import PopupController
from privacypal.router import MessageRouter
from privacypal.scraper import ScrapeClient, build_http_client
from privacypal.state import AppState
from privacypal.storage import LocalStorage
from privacypal.watcher import ContentWatcher

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from privacypal.protocols import PopupViewProtocol, ScraperProtocol

log = structlog.get_logger()


@dataclass
class TabSession:
    """One tab's page context: its document, watcher and teardown port."""

    tab_id: int
    document: PageDocument
    watcher: ContentWatcher
    port: ContextPort

    @property
    def url(self) -> str:
        return self.document.url


class Extension:
    """Opens tabs and popups against one background AppState."""

    def __init__(self, state: AppState) -> None:
        self.state = state
        self.tabs: dict[int, TabSession] = {}
        self._tab_ids = itertools.count(1)

    def open_tab(self, url: str, html: str = "", *, tab_id: int | None = None) -> TabSession:
        """Load a page in a (new) tab and start its content watcher."""
        if tab_id is None:
            tab_id = next(self._tab_ids)
            while tab_id in self.tabs:
                tab_id = next(self._tab_ids)
        else:
            # Reusing a tab id replaces its page context
            self.close_tab(tab_id)
        document = PageDocument(url, html)
        port = ContextPort(f"content-script-{tab_id}")
        watcher = ContentWatcher(
            document,
            self.state.bus,
            self.state.scraper,
            tab_id=tab_id,
            debounce_seconds=self.state.settings.watcher.debounce_ms / 1000,
        )
        session = TabSession(tab_id=tab_id, document=document, watcher=watcher, port=port)
        self.tabs[tab_id] = session
        watcher.start(port)
        log.info("tab_opened", tab_id=tab_id, url=url)
        return session

    def navigate(self, tab_id: int, url: str, html: str = "") -> TabSession:
        """Full navigation: the old page context and its badge are discarded."""
        self.close_tab(tab_id)
        return self.open_tab(url, html, tab_id=tab_id)

    def close_tab(self, tab_id: int) -> None:
        session = self.tabs.pop(tab_id, None)
        if session is None:
            return
        session.port.disconnect()
        self.state.badges.clear(tab_id)
        log.info("tab_closed", tab_id=tab_id)

    async def open_popup(self, view: PopupViewProtocol, tab_id: int) -> PopupController:
        """Activate the popup for ``tab_id``. The caller must ``close()`` it."""
        session = self.tabs.get(tab_id)
        controller = PopupController(
            self.state.cache,
            self.state.bus,
            view,
            active_tab_url=session.url if session is not None else "",
        )
        await controller.open()
        return controller

    def reload(self) -> None:
        """Extension reload: every content context is torn down."""
        for session in self.tabs.values():
            session.port.disconnect()
        self.tabs.clear()


@asynccontextmanager
async def extension_lifespan(
    settings: Settings | None = None,
    *,
    scraper: ScraperProtocol | None = None,
) -> AsyncGenerator[Extension, None]:
    """Create and tear down all shared resources for the extension's lifetime."""
    settings = settings or Settings()
    setup_logging(settings)
    log.info("extension_starting", version=__version__)

    if settings.storage.db_path == ":memory:":
        db_path = settings.storage.db_path
    else:
        path = Path(settings.storage.db_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        db_path = str(path)
    db = await aiosqlite.connect(db_path)
    storage = LocalStorage(db)
    await storage.init_db()

    http_client = None
    if scraper is None:
        http_client = build_http_client(settings.scraper)
        scraper = ScrapeClient(http_client, settings.scraper.endpoint)

    cache = PolicyCache(storage)
    badges = TabBadges()
    badge_controller = BadgeController(badges)
    router = MessageRouter(cache, badge_controller)
    bus = MessageBus(router)

    state = AppState(
        settings=settings,
        storage=storage,
        cache=cache,
        badges=badges,
        badge_controller=badge_controller,
        router=router,
        bus=bus,
        scraper=scraper,
        http_client=http_client,
    )
    extension = Extension(state)
    log.info("extension_started", scraper_endpoint=settings.scraper.endpoint)

    try:
        yield extension
    finally:
        extension.reload()
        bus.close()
        if http_client is not None:
            await http_client.aclose()
        await db.close()
        log.info("extension_stopping")
