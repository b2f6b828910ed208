from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from privacypal.models.analysis import AnalysisResult

PopupStatus = Literal["loading", "error", "no_policy", "ready"]


class PopupState(BaseModel):
    """What the popup render layer is asked to draw."""

    status: PopupStatus
    domain: str = ""
    reason: str | None = None  # set for "error"
    analysis: AnalysisResult | None = None  # set for "ready"
    policy_url: str | None = None  # set for "ready"

    @classmethod
    def loading(cls, domain: str) -> PopupState:
        return cls(status="loading", domain=domain)

    @classmethod
    def error(cls, reason: str, domain: str = "") -> PopupState:
        return cls(status="error", domain=domain, reason=reason)

    @classmethod
    def no_policy(cls, domain: str) -> PopupState:
        return cls(status="no_policy", domain=domain)

    @classmethod
    def ready(cls, domain: str, analysis: AnalysisResult, policy_url: str) -> PopupState:
        return cls(status="ready", domain=domain, analysis=analysis, policy_url=policy_url)
