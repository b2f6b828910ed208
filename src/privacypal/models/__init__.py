from __future__ import annotations

from privacypal.models.analysis import (
    SCORE_LABELS,
    AnalysisResult,
    AnalysisSection,
    DisplaySection,
    display_sections,
)
from privacypal.models.messages import (
    GetPrivacyPolicy,
    Message,
    MessageType,
    NoPrivacyLink,
    PrivacyContentFetched,
    PrivacyLinksFound,
    parse_message,
)
from privacypal.models.policy import Anchor, CandidateLink, PolicyRecord, ScrapeResult
from privacypal.models.popup import PopupState

__all__ = [
    # analysis
    "AnalysisSection",
    "AnalysisResult",
    "DisplaySection",
    "SCORE_LABELS",
    "display_sections",
    # policy
    "Anchor",
    "CandidateLink",
    "PolicyRecord",
    "ScrapeResult",
    # messages
    "Message",
    "MessageType",
    "NoPrivacyLink",
    "PrivacyLinksFound",
    "PrivacyContentFetched",
    "GetPrivacyPolicy",
    "parse_message",
    # popup
    "PopupState",
]
