"""Page-context privacy policy watcher.

One ContentWatcher runs per tab. It scans the page immediately on start,
re-scans on DOM mutations through a trailing debounce, reports what it finds
to the background router and fetches the best candidate's content from the
scraping collaborator.

All mutable state lives on the instance (``WatcherState``) and is cleared by
``stop()``, which is wired to the hosting context's teardown signal.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from privacypal.bus import MessageSender, TabInfo
from privacypal.debounce import Debouncer
from privacypal.domain import registrable_domain
from privacypal.errors import ErrorCode, PrivacyPalError
from privacypal.models.messages import (
    ContentFetchedData,
    LinkRef,
    LinksFoundData,
    NoPrivacyLink,
    PageData,
    PrivacyContentFetched,
    PrivacyLinksFound,
)
from privacypal.scorer import best_candidate, rank_candidates

if TYPE_CHECKING:
    from collections.abc import Callable

    from pydantic import BaseModel

    from privacypal.bus import ContextPort, MessageBus
    from privacypal.models.policy import CandidateLink
    from privacypal.protocols import DocumentProtocol, ScraperProtocol

log = structlog.get_logger()

DEFAULT_DEBOUNCE_SECONDS = 1.0


@dataclass
class WatcherState:
    """Per-instance scan bookkeeping."""

    scan_task: asyncio.Task[None] | None = None
    rescan_requested: bool = False
    # Page URL the per-page fields below belong to
    page_url: str | None = None
    # Page URL whose best candidate was found, fetched and reported
    processed_url: str | None = None
    last_found_links: list[str] = field(default_factory=list)
    failed_links: set[str] = field(default_factory=set)
    links_reported: bool = False
    disconnect_observer: Callable[[], None] | None = None
    started: bool = False
    stopped: bool = False

    def reset_page(self, page_url: str | None) -> None:
        self.page_url = page_url
        self.processed_url = None
        self.last_found_links = []
        self.failed_links = set()
        self.links_reported = False


class ContentWatcher:
    """Keeps one tab's best-candidate analysis fresh as its DOM changes."""

    def __init__(
        self,
        document: DocumentProtocol,
        bus: MessageBus,
        scraper: ScraperProtocol,
        *,
        tab_id: int | None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self._document = document
        self._bus = bus
        self._scraper = scraper
        self._tab_id = tab_id
        self._debouncer = Debouncer(self._scan_after_quiet, debounce_seconds)
        self.state = WatcherState()

    @property
    def scanning(self) -> bool:
        task = self.state.scan_task
        return task is not None and not task.done()

    def start(self, port: ContextPort | None = None) -> asyncio.Task[None] | None:
        """Scan immediately, then watch for mutations until stopped.

        Returns the initial scan task.
        """
        if self.state.started:
            return self.state.scan_task
        self.state.started = True
        if port is not None:
            port.on_disconnect(self.stop)

        log.info("watcher_started", tab_id=self._tab_id, url=self._document.url)
        initial_scan = self.request_scan()
        self.state.disconnect_observer = self._document.observe(self._debouncer.trigger)
        return initial_scan

    def stop(self) -> None:
        """Disconnect the observer, drop pending debounce timers and dedup state.

        A fetch already in flight is not cancelled; its result is discarded.
        """
        if self.state.stopped:
            return
        self.state.stopped = True
        if self.state.disconnect_observer is not None:
            self.state.disconnect_observer()
            self.state.disconnect_observer = None
        self._debouncer.cancel()
        self.state.rescan_requested = False
        self.state.reset_page(None)
        log.info("watcher_stopped", tab_id=self._tab_id)

    def request_scan(self) -> asyncio.Task[None] | None:
        """Start a scan unless one is in flight or the page was already processed."""
        if self.state.stopped:
            return None
        if self.scanning:
            # Picked up again once the running scan finishes
            self.state.rescan_requested = True
            log.debug("scan_skipped", reason="in_flight", tab_id=self._tab_id)
            return None
        if self._document.url == self.state.processed_url:
            log.debug("scan_skipped", reason="already_processed", url=self._document.url)
            return None

        task = asyncio.create_task(self._scan())
        self.state.scan_task = task
        return task

    async def wait_idle(self) -> None:
        """Wait for the scan in flight, if any."""
        task = self.state.scan_task
        while task is not None and not task.done():
            await asyncio.shield(task)
            task = self.state.scan_task

    async def _scan_after_quiet(self) -> None:
        task = self.request_scan()
        if task is not None:
            await task

    async def _scan(self) -> None:
        page_url = self._document.url
        scan_log = log.bind(tab_id=self._tab_id, url=page_url)
        if page_url != self.state.page_url:
            self.state.reset_page(page_url)

        try:
            candidates = rank_candidates(self._document.anchors(), registrable_domain(page_url))
            best = best_candidate(candidates)
            if best is None:
                await self._report_not_found(page_url, scan_log)
                return
            await self._process_candidate(page_url, best, len(candidates), scan_log)
        except Exception:
            scan_log.warning("scan_failed", exc_info=True)
        finally:
            self._after_scan()

    async def _report_not_found(self, page_url: str, scan_log: structlog.BoundLogger) -> None:
        if self.state.links_reported:
            # A candidate was already reported for this page; never downgrade
            scan_log.debug("no_privacy_link", reported=False)
            return
        scan_log.info("no_privacy_link", reported=True)
        await self._send(NoPrivacyLink(data=PageData(url=page_url)))

    async def _process_candidate(
        self,
        page_url: str,
        best: CandidateLink,
        candidate_count: int,
        scan_log: structlog.BoundLogger,
    ) -> None:
        if best.href in self.state.failed_links:
            scan_log.debug("candidate_skipped", reason="fetch_failed_before", policy=best.href)
            return

        scan_log.info(
            "privacy_link_found",
            policy=best.href,
            score=best.score,
            candidate_count=candidate_count,
        )
        self.state.last_found_links = [best.href]
        self.state.links_reported = True
        await self._send(
            PrivacyLinksFound(
                data=LinksFoundData(
                    url=page_url,
                    links=[LinkRef(text=best.text, href=best.href)],
                )
            )
        )

        try:
            result = await self._scraper.fetch(best.href)
        except PrivacyPalError as exc:
            scan_log.warning(
                "policy_fetch_failed",
                policy=best.href,
                code=exc.code,
                message=exc.message,
            )
            self.state.failed_links.add(best.href)
            return

        if self.state.stopped:
            scan_log.info("policy_fetch_discarded", reason="watcher_stopped", policy=best.href)
            return

        await self._send(
            PrivacyContentFetched(
                data=ContentFetchedData(
                    url=best.href,
                    content=result.content,
                    analysis=result.analysis,
                )
            )
        )
        self.state.processed_url = page_url
        scan_log.info("policy_content_reported", policy=best.href)

    def _after_scan(self) -> None:
        if self.state.rescan_requested and not self.state.stopped:
            self.state.rescan_requested = False
            self._debouncer.trigger()

    def _sender(self) -> MessageSender:
        tab = TabInfo(id=self._tab_id, url=self._document.url) if self._tab_id is not None else None
        return MessageSender(context="content", tab=tab)

    async def _send(self, message: BaseModel) -> None:
        try:
            response = await self._bus.send(message, self._sender())
        except PrivacyPalError as exc:
            if exc.code == ErrorCode.CONTEXT_INVALIDATED:
                log.debug("message_dropped", reason="context_invalidated", tab_id=self._tab_id)
            else:
                log.warning("message_send_failed", code=exc.code, message=exc.message)
            return
        if "error" in response:
            log.warning("message_rejected_by_router", tab_id=self._tab_id, **response["error"])
