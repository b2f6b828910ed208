"""Cross-context message passing.

Content watchers and popups never call the router directly: every request is
serialised to JSON-shaped data, handled in its own task and answered with a
JSON-shaped response. A stalled handler therefore blocks only its own sender.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Protocol

import structlog
from pydantic import BaseModel

from privacypal.errors import ErrorCode, PrivacyPalError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

log = structlog.get_logger()


@dataclass(frozen=True)
class TabInfo:
    id: int
    url: str


@dataclass(frozen=True)
class MessageSender:
    """Identity of the context a message came from."""

    context: Literal["content", "popup"]
    tab: TabInfo | None = None


class MessageHandler(Protocol):
    async def handle(self, raw: Mapping[str, Any], sender: MessageSender) -> dict: ...


def _to_wire(value: Any) -> Any:
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    # Round-trip through JSON so no object is shared between contexts
    return json.loads(json.dumps(value))


class MessageBus:
    """Delivers messages from content and popup contexts to the background handler."""

    def __init__(self, handler: MessageHandler) -> None:
        self._handler = handler
        self._closed = False
        self._in_flight: set[asyncio.Task[dict]] = set()

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, message: BaseModel | Mapping[str, Any], sender: MessageSender) -> dict:
        """Send ``message`` and wait for the handler's response.

        Raises PrivacyPalError(CONTEXT_INVALIDATED) once the bus is closed.
        """
        if self._closed:
            raise PrivacyPalError(
                code=ErrorCode.CONTEXT_INVALIDATED,
                message="Extension context invalidated",
            )
        payload = _to_wire(message)
        task = asyncio.create_task(self._handler.handle(payload, sender))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        response = await task
        return _to_wire(response)

    def close(self) -> None:
        """Refuse further messages. Requests already being handled still complete."""
        self._closed = True


class ContextPort:
    """Teardown signal for one hosting context (e.g. a content script)."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._callbacks: list[Callable[[], None]] = []
        self._connected = True

    @property
    def connected(self) -> bool:
        return self._connected

    def on_disconnect(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)

    def disconnect(self) -> None:
        if not self._connected:
            return
        self._connected = False
        for callback in self._callbacks:
            try:
                callback()
            except Exception:
                log.warning("port_disconnect_callback_error", port=self.name, exc_info=True)
        self._callbacks.clear()
