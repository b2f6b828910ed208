"""Unit tests for privacypal.bus."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from privacypal.bus import ContextPort, MessageBus, MessageSender
from privacypal.errors import ErrorCode, PrivacyPalError
from privacypal.models.messages import GetPrivacyPolicy

if TYPE_CHECKING:
    from collections.abc import Mapping

POPUP = MessageSender(context="popup")


class EchoHandler:
    def __init__(self) -> None:
        self.received: list[Mapping[str, Any]] = []
        self.shared: dict = {"nested": {"value": 1}}

    async def handle(self, raw: Mapping[str, Any], sender: MessageSender) -> dict:
        self.received.append(raw)
        return self.shared


class TestMessageBus:
    async def test_models_sent_as_json_data(self) -> None:
        handler = EchoHandler()
        bus = MessageBus(handler)

        await bus.send(GetPrivacyPolicy(domain="example.com"), POPUP)

        assert handler.received == [{"type": "GET_PRIVACY_POLICY", "domain": "example.com"}]

    async def test_no_objects_shared_between_contexts(self) -> None:
        handler = EchoHandler()
        bus = MessageBus(handler)
        message = {"type": "GET_PRIVACY_POLICY", "domain": "example.com"}

        response = await bus.send(message, POPUP)
        response["nested"]["value"] = 2

        assert handler.received[0] == message
        assert handler.received[0] is not message
        assert handler.shared["nested"]["value"] == 1

    async def test_closed_bus_raises_context_invalidated(self) -> None:
        handler = EchoHandler()
        bus = MessageBus(handler)
        bus.close()

        with pytest.raises(PrivacyPalError) as exc_info:
            await bus.send(GetPrivacyPolicy(domain="example.com"), POPUP)

        assert exc_info.value.code == ErrorCode.CONTEXT_INVALIDATED
        assert bus.closed
        assert handler.received == []


class TestContextPort:
    def test_disconnect_runs_callbacks_once(self) -> None:
        port = ContextPort("content-script-1")
        calls: list[str] = []
        port.on_disconnect(lambda: calls.append("stop"))

        port.disconnect()
        port.disconnect()

        assert calls == ["stop"]
        assert not port.connected

    def test_failing_callback_does_not_block_others(self) -> None:
        port = ContextPort("content-script-1")
        calls: list[str] = []

        def broken() -> None:
            raise RuntimeError("boom")

        port.on_disconnect(broken)
        port.on_disconnect(lambda: calls.append("stop"))

        port.disconnect()

        assert calls == ["stop"]
