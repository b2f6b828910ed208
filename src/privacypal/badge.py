"""Per-tab processing indicator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from privacypal.protocols import TabIndicatorProtocol

log = structlog.get_logger()


class ProcessingState(StrEnum):
    NO_POLICY_FOUND = "NO_POLICY_FOUND"
    PROCESSING = "PROCESSING"
    CONTENT_READY = "CONTENT_READY"


@dataclass(frozen=True)
class BadgeStyle:
    text: str
    color: str

    @property
    def rgb(self) -> tuple[int, int, int]:
        value = self.color.lstrip("#")
        return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


BADGE_STYLES: dict[ProcessingState, BadgeStyle] = {
    ProcessingState.NO_POLICY_FOUND: BadgeStyle(text="✓", color="#4CAF50"),  # green
    ProcessingState.PROCESSING: BadgeStyle(text="⚙️", color="#1976D2"),  # blue
    ProcessingState.CONTENT_READY: BadgeStyle(text="❗", color="#FFA000"),  # orange
}


class BadgeController:
    """Maps ProcessingState to the tab indicator. Holds no state of its own."""

    def __init__(self, indicator: TabIndicatorProtocol) -> None:
        self._indicator = indicator

    def set_state(self, tab_id: int, state: ProcessingState) -> None:
        style = BADGE_STYLES[state]
        self._indicator.set_badge_text(tab_id, style.text)
        self._indicator.set_badge_background_color(tab_id, style.color)
        log.debug("badge_updated", tab_id=tab_id, state=state)


class TabBadges:
    """In-memory tab indicator: what each tab currently shows."""

    def __init__(self) -> None:
        self._text: dict[int, str] = {}
        self._color: dict[int, str] = {}

    def set_badge_text(self, tab_id: int, text: str) -> None:
        self._text[tab_id] = text

    def set_badge_background_color(self, tab_id: int, color: str) -> None:
        self._color[tab_id] = color

    def get_badge(self, tab_id: int) -> BadgeStyle | None:
        if tab_id not in self._text:
            return None
        return BadgeStyle(text=self._text[tab_id], color=self._color.get(tab_id, ""))

    def get_state(self, tab_id: int) -> ProcessingState | None:
        """Reverse-map the shown badge to its ProcessingState, if any."""
        badge = self.get_badge(tab_id)
        for state, style in BADGE_STYLES.items():
            if style == badge:
                return state
        return None

    def clear(self, tab_id: int) -> None:
        """Drop the tab's indicator (navigation or close)."""
        self._text.pop(tab_id, None)
        self._color.pop(tab_id, None)
