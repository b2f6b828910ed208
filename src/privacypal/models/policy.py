from __future__ import annotations

from typing import Any

from pydantic import BaseModel, field_validator

from privacypal.models.analysis import AnalysisResult


class Anchor(BaseModel):
    """An anchor element as exposed by the page: visible text and absolute href."""

    text: str
    href: str


class CandidateLink(BaseModel):
    """A ranked privacy-policy candidate. Produced per scan, never persisted."""

    text: str
    href: str
    score: int


def _unwrap_analysis(value: Any) -> Any:
    # The analysis service wraps scores as {"summary": {...}, "analyzed_at": "..."}
    if isinstance(value, dict) and "summary" in value:
        return value["summary"]
    return value


class ScrapeResult(BaseModel):
    """Response body of the scraping/analysis collaborator."""

    url: str
    content: str
    analysis: AnalysisResult | None = None
    message: str | None = None

    @field_validator("analysis", mode="before")
    @classmethod
    def unwrap_analysis(cls, v: Any) -> Any:
        return _unwrap_analysis(v)


class PolicyRecord(BaseModel):
    """Persisted result for one domain. Last write wins."""

    url: str
    content: str
    analysis: AnalysisResult | None = None
    timestamp: int  # epoch milliseconds

    @field_validator("analysis", mode="before")
    @classmethod
    def unwrap_analysis(cls, v: Any) -> Any:
        return _unwrap_analysis(v)
