"""Protocol interfaces for swappable components.

Contexts and AppState reference these protocols, not the concrete
implementations. This allows:
- Tests to use lightweight in-memory implementations
- Other backends (a real browser tab API, a headless-browser scraper) to be
  swapped without changing the core
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable

    from privacypal.models.policy import Anchor, PolicyRecord, ScrapeResult
    from privacypal.models.popup import PopupState
    from privacypal.storage import StorageChange


class StorageProtocol(Protocol):
    """Interface for the local key-value storage area."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def remove(self, key: str) -> None: ...

    def on_changed(
        self, listener: Callable[[dict[str, StorageChange]], None]
    ) -> Callable[[], None]: ...


class CacheProtocol(Protocol):
    """Interface for the per-domain policy cache."""

    async def get(self, domain: str) -> PolicyRecord | None: ...

    async def upsert(self, domain: str, record: PolicyRecord) -> bool: ...

    def subscribe(
        self,
        listener: Callable[[str, PolicyRecord | None, PolicyRecord | None], None],
    ) -> Callable[[], None]: ...


class ScraperProtocol(Protocol):
    """Interface for the scraping/analysis collaborator client."""

    async def fetch(self, url: str) -> ScrapeResult: ...


class TabIndicatorProtocol(Protocol):
    """Interface for the per-tab badge API."""

    def set_badge_text(self, tab_id: int, text: str) -> None: ...

    def set_badge_background_color(self, tab_id: int, color: str) -> None: ...


class DocumentProtocol(Protocol):
    """Interface for the page the content watcher runs in."""

    @property
    def url(self) -> str: ...

    def anchors(self) -> list[Anchor]: ...

    def observe(self, callback: Callable[[], None]) -> Callable[[], None]: ...


class PopupViewProtocol(Protocol):
    """Render target for the popup."""

    def render(self, state: PopupState) -> None: ...
