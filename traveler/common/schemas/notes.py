"""
Note and webhook event models

WebhookEvent is the typed view of an inbound webhook body: every field is
optional and defaults are applied at format time (see templates.py).
NoteRequest/CreatedNote are the Rote wire shapes.
"""

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

MAX_TITLE_LENGTH = 200


class WebhookEvent(BaseModel):
    """Inbound webhook body. Unknown keys are ignored."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    title: Optional[str] = None
    content: Optional[str] = None
    event: Optional[str] = None
    source: Optional[str] = None
    url: Optional[str] = None
    tags: Optional[List[str]] = None
    timestamp: Optional[str] = None
    payload: Any = None


class Note(BaseModel):
    """Rendered note ready to hand to Rote"""
    title: str = Field(max_length=MAX_TITLE_LENGTH)
    content: str


class NoteRequest(BaseModel):
    """Body of a Rote note creation call (openkey is added by the client)"""
    content: str
    title: Optional[str] = None
    state: Optional[str] = "private"
    type: Optional[str] = "rote"
    tags: List[str] = Field(default_factory=list)
    pin: bool = False

    @classmethod
    def from_note(cls, note: Note, tags) -> "NoteRequest":
        return cls(title=note.title, content=note.content, tags=list(tags))


class CreatedNote(BaseModel):
    """Rote's view of a created note (the ``data`` field of the envelope)"""
    model_config = ConfigDict(extra="ignore")

    id: Union[str, int]
    title: Optional[str] = None
    content: Optional[str] = None
