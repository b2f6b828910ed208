"""In-memory page document for the content watcher.

Stands in for the live DOM: holds the page URL and HTML, exposes the anchors
the way the page would (text plus absolute href) and notifies observers of
every subtree mutation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urljoin

import structlog
from bs4 import BeautifulSoup

from privacypal.models.policy import Anchor

if TYPE_CHECKING:
    from collections.abc import Callable

log = structlog.get_logger()


class PageDocument:
    """HTML page with mutation observers, implementing DocumentProtocol."""

    def __init__(self, url: str, html: str = "") -> None:
        self._url = url
        self._soup = BeautifulSoup(html, "html.parser")
        self._observers: list[Callable[[], None]] = []

    @property
    def url(self) -> str:
        return self._url

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def anchors(self) -> list[Anchor]:
        """Return anchors with an href, in document order, hrefs made absolute."""
        anchors: list[Anchor] = []
        for link in self._soup.find_all("a", href=True):
            try:
                href = urljoin(self._url, link["href"].strip())
            except ValueError:
                continue
            anchors.append(Anchor(text=link.get_text(), href=href))
        return anchors

    def observe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a subtree-mutation observer. Returns its disconnect callable."""
        self._observers.append(callback)

        def disconnect() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return disconnect

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def append_html(self, fragment: str) -> None:
        """Append ``fragment`` to the body (or the document root)."""
        target = self._soup.body or self._soup
        for node in list(BeautifulSoup(fragment, "html.parser").contents):
            target.append(node)
        self._notify()

    def remove_anchor(self, href: str) -> bool:
        """Remove every anchor whose resolved href equals ``href``."""
        removed = False
        for link in self._soup.find_all("a", href=True):
            if urljoin(self._url, link["href"].strip()) == href:
                link.decompose()
                removed = True
        if removed:
            self._notify()
        return removed

    def navigate(self, url: str, html: str = "") -> None:
        """Replace the location and the whole document."""
        self._url = url
        self._soup = BeautifulSoup(html, "html.parser")
        self._notify()

    def _notify(self) -> None:
        for callback in list(self._observers):
            try:
                callback()
            except Exception:
                log.warning("mutation_observer_error", url=self._url, exc_info=True)
