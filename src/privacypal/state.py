"""Background context state container.

AppState is created once by ``extension_lifespan`` and shared by the
background router and the helpers that open tabs and popups. Content
watchers and popups only receive the pieces they are allowed to touch
(the message bus, the scrape client, the cache for popups).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from privacypal.badge import BadgeController, TabBadges
    from privacypal.bus import MessageBus
    from privacypal.config import Settings
    from privacypal.protocols import CacheProtocol, ScraperProtocol, StorageProtocol
    from privacypal.router import MessageRouter


@dataclass
class AppState:
    """Holds all shared runtime state."""

    settings: Settings
    storage: StorageProtocol
    cache: CacheProtocol
    badges: TabBadges
    badge_controller: BadgeController
    router: MessageRouter
    bus: MessageBus
    scraper: ScraperProtocol
    http_client: httpx.AsyncClient | None = None
