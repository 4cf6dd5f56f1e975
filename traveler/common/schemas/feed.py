"""
Feed item records

FeedItem is produced by the collector and never mutated. ScoredItem is the
same item annotated by the scorer; it lives for a single pipeline run.
"""

from dataclasses import dataclass, asdict
from typing import Optional, Tuple


@dataclass(frozen=True)
class FeedItem:
    """A candidate item pulled from a source. ``url`` is the unique key."""
    source: str
    title: str
    url: str
    published_at: Optional[str] = None
    summary: Optional[str] = None


@dataclass(frozen=True)
class ScoredItem(FeedItem):
    """FeedItem plus a relevance score in [0, 1] and the rules that fired"""
    score: float = 0.0
    reasons: Tuple[str, ...] = ()

    @classmethod
    def from_item(cls, item: FeedItem, score: float, reasons) -> "ScoredItem":
        return cls(**asdict(item), score=score, reasons=tuple(reasons))
