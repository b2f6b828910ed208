"""Popup controller.

Resolves the active tab's domain, reads the PolicyCache directly, falls back
to asking the background router, and keeps the view in sync with the cache's
change feed until the popup closes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from privacypal.bus import MessageSender
from privacypal.domain import registrable_domain
from privacypal.errors import PrivacyPalError
from privacypal.models.messages import GetPrivacyPolicy
from privacypal.models.policy import PolicyRecord
from privacypal.models.popup import PopupState

if TYPE_CHECKING:
    from collections.abc import Callable

    from privacypal.bus import MessageBus
    from privacypal.protocols import CacheProtocol, PopupViewProtocol

UNSUPPORTED_PAGE = "This page has no domain PrivacyPal can check"


class PopupController:
    """One popup activation. Create, ``open()``, and always ``close()``."""

    def __init__(
        self,
        cache: CacheProtocol,
        bus: MessageBus,
        view: PopupViewProtocol,
        active_tab_url: str,
    ) -> None:
        self._cache = cache
        self._bus = bus
        self._view = view
        self._active_tab_url = active_tab_url
        self._domain = ""
        self._unsubscribe: Callable[[], None] | None = None
        self._feed_rendered = False
        self._closed = False
        self.state = PopupState.loading("")

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def subscribed(self) -> bool:
        return self._unsubscribe is not None

    async def open(self) -> PopupState:
        """Render the initial state for the active tab and return it."""
        self._domain = registrable_domain(self._active_tab_url)
        log = structlog.get_logger().bind(domain=self._domain)

        if not self._domain:
            log.info("popup_unsupported_page", url=self._active_tab_url)
            return self._render(PopupState.error(UNSUPPORTED_PAGE))

        self._render(PopupState.loading(self._domain))
        # Subscribe before reading so a write landing mid-read is not missed
        self._unsubscribe = self._cache.subscribe(self._on_policy_changed)

        record = await self._cache.get(self._domain)
        if self._closed:
            return self.state
        if record is not None and record.analysis is not None:
            log.info("popup_cache_hit", source="storage")
            return self._render(self._state_for(record))

        state = await self._request_from_background(log)
        # A change-feed update may have landed while waiting; it is newer
        if not self._feed_rendered and not self._closed:
            return self._render(state)
        return self.state

    def close(self) -> None:
        """Unsubscribe from the change feed. Safe to call more than once."""
        self._closed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _request_from_background(self, log: structlog.BoundLogger) -> PopupState:
        try:
            response = await self._bus.send(
                GetPrivacyPolicy(domain=self._domain),
                MessageSender(context="popup"),
            )
        except PrivacyPalError as exc:
            log.warning("popup_request_failed", code=exc.code, message=exc.message)
            return PopupState.error(exc.message, self._domain)

        if "error" in response:
            log.warning("popup_request_rejected", **response["error"])
            return PopupState.error(response["error"]["message"], self._domain)

        raw_policy = response.get("policy")
        if raw_policy is None:
            log.info("popup_no_policy")
            return PopupState.no_policy(self._domain)

        try:
            record = PolicyRecord.model_validate(raw_policy)
        except ValidationError:
            log.warning("popup_policy_invalid", exc_info=True)
            return PopupState.no_policy(self._domain)

        log.info("popup_cache_hit", source="background")
        return self._state_for(record)

    def _on_policy_changed(
        self, domain: str, old: PolicyRecord | None, new: PolicyRecord | None
    ) -> None:
        if self._closed or domain != self._domain:
            return
        self._feed_rendered = True
        if new is None:
            self._render(PopupState.no_policy(self._domain))
        else:
            self._render(self._state_for(new))

    def _state_for(self, record: PolicyRecord) -> PopupState:
        if record.analysis is None:
            # Content-only deployments store no scores to show
            return PopupState.no_policy(self._domain)
        return PopupState.ready(self._domain, record.analysis, record.url)

    def _render(self, state: PopupState) -> PopupState:
        self.state = state
        self._view.render(state)
        return state
