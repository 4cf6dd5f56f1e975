"""
Traveler Schemas

Feed items, webhook events and the notes rendered from them.
"""

from .feed import FeedItem, ScoredItem
from .notes import WebhookEvent, Note, NoteRequest, CreatedNote, MAX_TITLE_LENGTH
from .templates import (
    render_item_note,
    render_webhook_note,
    parse_provenance,
    format_provenance,
    clip,
    utc_now_iso,
)

__all__ = [
    "FeedItem",
    "ScoredItem",
    "WebhookEvent",
    "Note",
    "NoteRequest",
    "CreatedNote",
    "MAX_TITLE_LENGTH",
    "render_item_note",
    "render_webhook_note",
    "parse_provenance",
    "format_provenance",
    "clip",
    "utc_now_iso",
]
