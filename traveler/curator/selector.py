"""
Selection Policy

Turns the day's candidates into a small ranked pick:
unseen -> scored -> sorted (stable, descending) -> score floor -> daily cap.
"""

import logging
from typing import Iterable, List, Optional

from ..common.config import RankingConfig
from ..common.schemas import FeedItem, ScoredItem
from .dedupe import SeenStore
from .scorer import InterestScorer

logger = logging.getLogger("traveler.curator.selector")


def select_items(
    items: Iterable[FeedItem],
    policy: RankingConfig,
    store: SeenStore,
    scorer: InterestScorer,
    now: Optional[int] = None,
) -> List[ScoredItem]:
    """
    Select the items worth writing today.

    The store is read once, up front. Items whose URL is seen within
    ``policy.dedupe_window_days`` are dropped, as are repeats of a URL already
    in this batch. Ties keep arrival order.

    Args:
        items: Candidates in arrival order
        policy: daily_limit, min_score, dedupe_window_days
        store: Seen store consulted for deduplication (not written)
        scorer: Interest scorer
        now: Current time in unix ms (default: wall clock)

    Returns:
        At most ``daily_limit`` items, each scoring >= ``min_score``
    """
    seen = store.seen_within(policy.dedupe_window_days, now=now)

    fresh: List[FeedItem] = []
    batch_urls = set()
    skipped_seen = 0
    for item in items:
        if item.url in seen:
            skipped_seen += 1
            continue
        if item.url in batch_urls:
            continue
        batch_urls.add(item.url)
        fresh.append(item)

    scored = sorted((scorer.score(item) for item in fresh), key=lambda s: s.score, reverse=True)
    picked = [s for s in scored if s.score >= policy.min_score][:policy.daily_limit]

    logger.info(
        "Selected %d of %d fresh items (%d already seen)",
        len(picked), len(fresh), skipped_seen,
    )
    return picked
