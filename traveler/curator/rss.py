"""
RSS/Atom collection.

Fetches a feed over HTTP and turns its entries into FeedItems. Entries
without a title or a link are dropped; text fields are trimmed and clipped.
"""

import logging
from typing import List, Optional

import feedparser  # type: ignore
import httpx

from ..common.errors import UpstreamError
from ..common.schemas import FeedItem, clip

logger = logging.getLogger("traveler.curator.rss")

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.1"


def _entry_to_item(entry: dict, source_name: str) -> Optional[FeedItem]:
    """Convert a feedparser entry, or None when it has no title/link"""
    title = clip(entry.get("title"))
    link = clip(entry.get("link"))
    if not title or not link:
        return None

    published = clip(entry.get("published") or entry.get("updated"))
    summary = clip(entry.get("summary") or entry.get("description"))

    return FeedItem(
        source=source_name,
        title=title,
        url=link,
        published_at=published or None,
        summary=summary or None,
    )


def parse_feed(content: str, source_name: str = "rss") -> List[FeedItem]:
    """Parse RSS or Atom text into FeedItems, in document order"""
    parsed = feedparser.parse(content)
    if parsed.get("bozo") and not parsed.get("entries"):
        logger.warning("Feed %s could not be parsed: %s", source_name, parsed.get("bozo_exception"))

    items = []
    for entry in parsed.get("entries", []):
        item = _entry_to_item(entry, source_name)
        if item is not None:
            items.append(item)
    return items


async def fetch_rss(
    url: str,
    source_name: str = "rss",
    http_client: Optional[httpx.AsyncClient] = None,
    timeout: float = 30.0,
) -> List[FeedItem]:
    """
    Fetch and parse a feed.

    Raises:
        UpstreamError: on transport failure or non-2xx status
    """
    try:
        if http_client is not None:
            response = await http_client.get(url, headers={"accept": FEED_ACCEPT})
        else:
            async with httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=True) as client:
                response = await client.get(url, headers={"accept": FEED_ACCEPT})
    except httpx.HTTPError as e:
        raise UpstreamError(f"rss_fetch_failed {url}: {e}") from e

    if not response.is_success:
        raise UpstreamError(f"rss_fetch_failed {response.status_code} {url}")

    items = parse_feed(response.text, source_name)
    logger.info("Fetched %d items from %s", len(items), source_name)
    return items
