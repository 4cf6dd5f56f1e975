"""
Curator - Scheduled Interest Filtering

Pulls configured feeds and writes a small, ranked daily pick to Rote.

Key Components:
- InterestScorer: keyword-rule relevance scoring
- SeenStore: last-seen timestamps for URL deduplication
- select_items: dedupe, rank, floor and cap
- run_once: one full collect/select/write/mark pass
"""

from .dedupe import SeenStore
from .pipeline import RunReport, collect_items, run_once
from .rss import fetch_rss, parse_feed
from .scorer import InterestScorer
from .selector import select_items

__all__ = [
    "SeenStore",
    "RunReport",
    "collect_items",
    "run_once",
    "fetch_rss",
    "parse_feed",
    "InterestScorer",
    "select_items",
]
