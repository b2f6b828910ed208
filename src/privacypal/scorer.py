"""Privacy-policy link ranking.

Pure business logic: receives anchors and the current page domain, returns
CandidateLink results. No knowledge of AppState, messaging, or I/O.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from privacypal.domain import is_related_domain, registrable_domain
from privacypal.models.policy import CandidateLink

if TYPE_CHECKING:
    from collections.abc import Iterable

    from privacypal.models.policy import Anchor

PRIVACY_KEYWORDS: tuple[str, ...] = ("privacy policy", "privacy", "data policy")

SCORE_EXACT_PHRASE = 10
SCORE_PRIVACY_WORD = 5
SCORE_OTHER_KEYWORD = 1


def matches_keyword(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in PRIVACY_KEYWORDS)


def score_link_text(text: str) -> int:
    """Score anchor text: exact phrase beats the bare word beats anything else."""
    lowered = text.lower()
    if "privacy policy" in lowered:
        return SCORE_EXACT_PHRASE
    if "privacy" in lowered:
        return SCORE_PRIVACY_WORD
    return SCORE_OTHER_KEYWORD


def rank_candidates(anchors: Iterable[Anchor], current_domain: str) -> list[CandidateLink]:
    """Rank anchors that look like privacy-policy links for ``current_domain``.

    Steps (order matters):
      1. Keep anchors whose text contains a privacy keyword
      2. Keep anchors whose target domain is related to the current domain
      3. Score by text
      4. Sort by score descending; ``sorted`` is stable so document order
         breaks ties

    Returns the full ranked list, ``[]`` when nothing matches.
    """
    keyword_matches = [anchor for anchor in anchors if matches_keyword(anchor.text)]

    candidates = [
        CandidateLink(
            text=anchor.text.strip(),
            href=anchor.href,
            score=score_link_text(anchor.text),
        )
        for anchor in keyword_matches
        if is_related_domain(registrable_domain(anchor.href), current_domain)
    ]
    return sorted(candidates, key=lambda candidate: candidate.score, reverse=True)


def best_candidate(candidates: list[CandidateLink]) -> CandidateLink | None:
    """Return the top-ranked candidate, or None for an empty ranking."""
    return candidates[0] if candidates else None
