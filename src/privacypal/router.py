"""Background message router.

Receives typed messages from content watchers and popups, updates the
PolicyCache and the tab badges, and always answers: protocol errors and
unexpected failures become explicit error payloads so no sender waits
forever.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import structlog

from privacypal.badge import ProcessingState
from privacypal.domain import registrable_domain
from privacypal.errors import ErrorCode, PrivacyPalError
from privacypal.models.messages import TAB_SCOPED, MessageType, parse_message
from privacypal.models.policy import PolicyRecord

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from privacypal.badge import BadgeController
    from privacypal.bus import MessageSender, TabInfo
    from privacypal.models.messages import (
        GetPrivacyPolicy,
        NoPrivacyLink,
        PrivacyContentFetched,
        PrivacyLinksFound,
    )
    from privacypal.protocols import CacheProtocol

RECEIVED = {"status": "received"}
CONTENT_STORED = {"status": "content_stored"}


def now_millis() -> int:
    return int(time.time() * 1000)


def _require_tab(sender: MessageSender) -> TabInfo:
    if sender.tab is None:
        raise PrivacyPalError(
            code=ErrorCode.MISSING_SENDER_TAB,
            message="Message requires a sender tab",
        )
    return sender.tab


class MessageRouter:
    """Dispatches the four message kinds to their handlers."""

    def __init__(
        self,
        cache: CacheProtocol,
        badges: BadgeController,
        *,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self._cache = cache
        self._badges = badges
        self._clock = clock
        self._handlers: dict[str, Callable[[Any, MessageSender], Awaitable[dict]]] = {
            MessageType.NO_PRIVACY_LINK: self._on_no_privacy_link,
            MessageType.PRIVACY_LINKS_FOUND: self._on_links_found,
            MessageType.PRIVACY_CONTENT_FETCHED: self._on_content_fetched,
            MessageType.GET_PRIVACY_POLICY: self._on_get_policy,
        }

    async def handle(self, raw: Mapping[str, Any], sender: MessageSender) -> dict:
        """Handle one message and return its response payload."""
        tab_id = sender.tab.id if sender.tab is not None else None
        log = structlog.get_logger().bind(context=sender.context, tab_id=tab_id)

        try:
            message = parse_message(raw)
            log = log.bind(message_type=message.type)
            log.debug("message_received")
            if message.type in TAB_SCOPED and sender.tab is None:
                raise PrivacyPalError(
                    code=ErrorCode.MISSING_SENDER_TAB,
                    message=f"{message.type} requires a sender tab",
                )
            return await self._handlers[message.type](message, sender)
        except PrivacyPalError as exc:
            log.warning("message_rejected", code=exc.code, message=exc.message)
            return exc.to_dict()
        except Exception:
            log.error("message_handler_unexpected_error", exc_info=True)
            return PrivacyPalError(
                code=ErrorCode.INTERNAL_ERROR,
                message="Unexpected error handling message",
                recoverable=True,
            ).to_dict()

    # ------------------------------------------------------------------
    # Content watcher messages (tab-scoped)
    # ------------------------------------------------------------------

    async def _on_no_privacy_link(self, message: NoPrivacyLink, sender: MessageSender) -> dict:
        self._badges.set_state(_require_tab(sender).id, ProcessingState.NO_POLICY_FOUND)
        return RECEIVED

    async def _on_links_found(self, message: PrivacyLinksFound, sender: MessageSender) -> dict:
        self._badges.set_state(_require_tab(sender).id, ProcessingState.PROCESSING)
        return RECEIVED

    async def _on_content_fetched(
        self, message: PrivacyContentFetched, sender: MessageSender
    ) -> dict:
        tab = _require_tab(sender)
        domain = registrable_domain(tab.url)
        if not domain:
            raise PrivacyPalError(
                code=ErrorCode.INVALID_DOMAIN,
                message=f"Cannot derive a domain from tab URL {tab.url!r}",
            )

        record = PolicyRecord(
            url=message.data.url,
            content=message.data.content,
            analysis=message.data.analysis,
            timestamp=self._clock(),
        )
        if not await self._cache.upsert(domain, record):
            raise PrivacyPalError(
                code=ErrorCode.STORAGE_FAILED,
                message=f"Failed to store privacy policy for {domain}",
                recoverable=True,
            )

        self._badges.set_state(tab.id, ProcessingState.CONTENT_READY)
        return CONTENT_STORED

    # ------------------------------------------------------------------
    # Popup messages
    # ------------------------------------------------------------------

    async def _on_get_policy(self, message: GetPrivacyPolicy, sender: MessageSender) -> dict:
        if not message.domain:
            return {"policy": None}
        record = await self._cache.get(message.domain)
        return {"policy": record.model_dump(mode="json") if record is not None else None}
