"""
Interest Scorer

Keyword-rule relevance scoring for feed items.

Algorithm:
1. Start at a 0.5 baseline
2. +0.25 if any include keyword appears in title + summary
3. -0.35 if any exclude keyword appears in the same text
4. +0.10 if the item links to an http(s) URL
5. Clamp to [0, 1]

Matching is case-insensitive substring. Reasons are recorded in the order the
rules fired and only feed the note's provenance line.
"""

from typing import Iterable, List, Tuple

from ..common.schemas import FeedItem, ScoredItem

BASELINE_SCORE = 0.5
INCLUDE_BONUS = 0.25
EXCLUDE_PENALTY = 0.35
URL_BONUS = 0.10

REASON_INTERESTS = "matches_interests"
REASON_EXCLUDED = "matches_excluded"
REASON_HAS_URL = "has_url"


def _normalize(keywords: Iterable[str]) -> Tuple[str, ...]:
    return tuple(k.strip().lower() for k in keywords if k and k.strip())


def includes_any(haystack: str, needles: Iterable[str]) -> bool:
    """Case-insensitive substring match against any needle"""
    text = haystack.lower()
    return any(needle.lower() in text for needle in needles)


class InterestScorer:
    """
    Pure, deterministic scorer.

    The same (item, include, exclude) always yields the same score and
    reasons; there is no I/O.
    """

    def __init__(self, include: Iterable[str] = (), exclude: Iterable[str] = ()):
        """
        Initialize scorer.

        Args:
            include: Interest keywords (blank entries are dropped)
            exclude: Excluded keywords (blank entries are dropped)
        """
        self._include = _normalize(include)
        self._exclude = _normalize(exclude)

    @classmethod
    def from_config(cls, interests) -> "InterestScorer":
        return cls(include=interests.include, exclude=interests.exclude)

    @property
    def include(self) -> Tuple[str, ...]:
        return self._include

    @property
    def exclude(self) -> Tuple[str, ...]:
        return self._exclude

    def score(self, item: FeedItem) -> ScoredItem:
        text = f"{item.title}\n{item.summary or ''}".strip()

        reasons: List[str] = []
        score = BASELINE_SCORE

        if self._include and includes_any(text, self._include):
            score += INCLUDE_BONUS
            reasons.append(REASON_INTERESTS)

        if self._exclude and includes_any(text, self._exclude):
            score -= EXCLUDE_PENALTY
            reasons.append(REASON_EXCLUDED)

        if item.url.startswith("http"):
            score += URL_BONUS
            reasons.append(REASON_HAS_URL)

        # Rounded so identical rule sets compare equal despite float drift
        score = round(max(0.0, min(1.0, score)), 4)

        return ScoredItem.from_item(item, score=score, reasons=reasons)
