"""
Note Templates

Renders selected feed items and webhook events into Rote notes.
Lines whose value is absent are dropped entirely rather than left blank.
"""

import json
import re
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from .feed import ScoredItem
from .notes import MAX_TITLE_LENGTH, Note, WebhookEvent

MAX_BODY_LENGTH = 20_000

PROVENANCE_PREFIX = "Why I picked this:"
PROVENANCE_PATTERN = re.compile(
    r"^Why I picked this: score=(?P<score>-?\d+(?:\.\d+)?) \((?P<reasons>.*)\)$",
    re.MULTILINE,
)


def clip(value: Any, max_length: int = MAX_BODY_LENGTH) -> str:
    """Stringify, trim and truncate"""
    text = "" if value is None else str(value).strip()
    return text[:max_length]


def utc_now_iso(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with milliseconds and a Z suffix"""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _join(lines: List[str]) -> str:
    return "\n".join(line for line in lines if line)


def _signature(persona_name: str) -> str:
    return f"— {persona_name}"


def _has_payload(payload: Any) -> bool:
    """Empty scalars (null, 0, false, "") are no payload; empty lists and objects are"""
    if isinstance(payload, (list, dict)):
        return True
    return bool(payload)


def format_provenance(score: float, reasons) -> str:
    """Render the provenance line recording why an item was picked"""
    return f"{PROVENANCE_PREFIX} score={score:.2f} ({', '.join(reasons)})"


def parse_provenance(content: str) -> Tuple[float, List[str]]:
    """
    Recover score and reasons from a note rendered by render_item_note.

    Raises:
        ValueError: if the content carries no provenance line
    """
    match = PROVENANCE_PATTERN.search(content)
    if not match:
        raise ValueError("No provenance line found")
    reasons_text = match.group("reasons").strip()
    reasons = [r for r in reasons_text.split(", ") if r] if reasons_text else []
    return float(match.group("score")), reasons


def render_item_note(item: ScoredItem, persona_name: str = "Traveler") -> Note:
    """Render a selected feed item"""
    title = f"[{item.source}] {item.title}"[:MAX_TITLE_LENGTH]
    lines = [
        f"Source: {item.url}",
        f"Published: {item.published_at}" if item.published_at else "",
        f"Summary: {item.summary}" if item.summary else "",
        format_provenance(item.score, item.reasons),
        _signature(persona_name),
    ]
    return Note(title=title, content=_join(lines))


def render_webhook_note(
    event: WebhookEvent,
    persona_name: str = "Traveler",
    now: Optional[datetime] = None,
) -> Note:
    """
    Render an inbound webhook event.

    Title falls back from ``title`` to ``event`` to "Webhook event"; a title
    that is present but empty still wins. Content and payload are clipped to
    20,000 characters each. A payload of null, 0, false or "" is left out.
    """
    if event.title is not None:
        title_base = event.title
    elif event.event is not None:
        title_base = event.event
    else:
        title_base = "Webhook event"
    title = f"[Webhook] {clip(title_base, MAX_TITLE_LENGTH)}"[:MAX_TITLE_LENGTH]

    payload = ""
    if _has_payload(event.payload):
        payload = clip(json.dumps(event.payload, indent=2, ensure_ascii=False))

    content = clip(event.content) if event.content else ""

    lines = [
        f"Source: {event.source or 'webhook'}",
        f"Event: {event.event}" if event.event else "",
        f"Timestamp: {event.timestamp or utc_now_iso(now)}",
        f"URL: {event.url}" if event.url else "",
        f"Content: {content}" if content else "",
        f"Payload:\n{payload}" if payload else "",
        _signature(persona_name),
    ]
    return Note(title=title, content=_join(lines))
