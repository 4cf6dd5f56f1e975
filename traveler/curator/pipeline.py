"""
Curator Pipeline

One scheduled pass:
1. Collect items from every configured source (concurrently)
2. Select unseen, relevant items under the daily cap
3. Render and write a Rote note per selected item
4. Mark an item seen only after its note was confirmed created

A failing source is logged and reported; the other sources still run.
A failing note leaves its item unmarked, so the next run retries it.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from ..common.config import SourceConfig, TravelerConfig
from ..common.errors import UpstreamError
from ..common.schemas import FeedItem, NoteRequest, ScoredItem, render_item_note
from .dedupe import SeenStore
from .rss import fetch_rss
from .scorer import InterestScorer
from .selector import select_items

logger = logging.getLogger("traveler.curator.pipeline")

Fetcher = Callable[[str, str], Awaitable[List[FeedItem]]]


@dataclass
class RunReport:
    """Outcome of a single pipeline pass"""
    fetched: int = 0
    selected: List[ScoredItem] = field(default_factory=list)
    written: Dict[str, str] = field(default_factory=dict)  # url -> note id
    failed_sources: Dict[str, str] = field(default_factory=dict)  # source name -> error
    failed_urls: Dict[str, str] = field(default_factory=dict)  # url -> error
    skipped_sources: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_sources and not self.failed_urls


async def collect_items(
    sources: Sequence[SourceConfig],
    fetcher: Fetcher = fetch_rss,
) -> Tuple[List[FeedItem], Dict[str, str], List[str]]:
    """
    Fetch all rss sources concurrently.

    Returns:
        (items in source order, failed source name -> error, skipped source names)
    """
    rss_sources = []
    skipped = []
    for source in sources:
        if source.type == "rss":
            rss_sources.append(source)
        else:
            logger.warning("Skipping source %s: unsupported type %r", source.name, source.type)
            skipped.append(source.name)

    results = await asyncio.gather(
        *(fetcher(source.url, source.name) for source in rss_sources),
        return_exceptions=True,
    )

    items: List[FeedItem] = []
    failed: Dict[str, str] = {}
    for source, result in zip(rss_sources, results):
        if isinstance(result, UpstreamError):
            logger.error("Source %s failed: %s", source.name, result)
            failed[source.name] = str(result)
            continue
        if isinstance(result, BaseException):
            raise result
        items.extend(result)

    return items, failed, skipped


async def run_once(
    config: TravelerConfig,
    note_client=None,
    store: Optional[SeenStore] = None,
    fetcher: Fetcher = fetch_rss,
    now: Optional[int] = None,
    dry_run: bool = False,
) -> RunReport:
    """
    Run the curator once.

    Args:
        config: Loaded Traveler configuration
        note_client: Object with ``async create_note(NoteRequest)`` (RoteClient)
        store: Seen store (default: the configured state file)
        fetcher: ``async (url, source_name) -> List[FeedItem]``
        now: Current time in unix ms, used for dedupe reads (default: wall clock)
        dry_run: Select and log, but write no notes and mark nothing

    Returns:
        RunReport describing what was fetched, selected, written and failed
    """
    store = store or SeenStore(config.state_path)
    scorer = InterestScorer.from_config(config.interests)
    dry_run = dry_run or not config.rote.enabled
    if not dry_run and note_client is None:
        raise ValueError("note_client is required unless dry_run is set")

    report = RunReport()
    items, report.failed_sources, report.skipped_sources = await collect_items(config.sources, fetcher)
    report.fetched = len(items)

    report.selected = select_items(items, config.ranking, store, scorer, now=now)
    if not report.selected:
        logger.info("No items selected today.")
        return report

    tags = list(config.rote.tags)
    for item in report.selected:
        note = render_item_note(item, config.persona.name)

        if dry_run:
            logger.info("[dry-run] Would write note: %s (score %.2f)", note.title, item.score)
            continue

        try:
            created = await note_client.create_note(NoteRequest.from_note(note, tags))
        except UpstreamError as e:
            logger.error("Failed to write note for %s: %s", item.url, e)
            report.failed_urls[item.url] = str(e)
            continue

        store.mark_seen(item.url, now=now)
        report.written[item.url] = str(created.id)
        logger.info("Wrote note: %s %s", created.id, created.title or note.title)

    return report
