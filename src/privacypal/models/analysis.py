from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class AnalysisSection(BaseModel):
    """One scored category of a privacy policy analysis."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=1, le=5)
    justification: str  # 1-2 sentences
    learn_more: str  # 3-5 sentences


class AnalysisResult(BaseModel):
    """Scores produced by the external analysis collaborator.

    Opaque to the core beyond its shape; attached to a PolicyRecord as an
    immutable value.
    """

    model_config = ConfigDict(frozen=True)

    data_collection_and_retention: AnalysisSection
    data_usage: AnalysisSection
    user_rights_and_controls: AnalysisSection


SCORE_LABELS: dict[int, str] = {
    1: "Bad",
    2: "Poor",
    3: "Fair",
    4: "Good",
    5: "Excellent",
}


@dataclass(frozen=True)
class DisplaySection:
    title: str
    description: str
    section: AnalysisSection

    @property
    def label(self) -> str:
        return SCORE_LABELS[self.section.score]


def display_sections(analysis: AnalysisResult) -> list[DisplaySection]:
    """Return the three analysis categories in presentation order."""
    return [
        DisplaySection(
            title="Data Collection & Retention",
            description="How your personal information is collected and stored",
            section=analysis.data_collection_and_retention,
        ),
        DisplaySection(
            title="Data Usage",
            description="How your data is used and shared with others",
            section=analysis.data_usage,
        ),
        DisplaySection(
            title="User Rights & Controls",
            description="Your rights and control over your personal data",
            section=analysis.user_rights_and_controls,
        ),
    ]
