"""
Webhook-to-Notes Server

FastAPI app turning authenticated JSON webhooks into Rote notes.

Request handling, in order:
1. Unknown path -> 404, wrong method -> 405
2. Content type must be application/json -> 415
3. Body must fit max_body_kb -> 413
4. Token / signature verification -> 401
5. Body must be a JSON object with a valid event shape -> 400
6. Rote note creation -> 200 {ok, id}, or 500 rote_failed so the sender retries
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request
from pydantic import ValidationError as PydanticValidationError

from .. import __version__
from ..common.config import TravelerConfig
from ..common.errors import ConfigurationError, UpstreamError, ValidationError
from ..common.schemas import NoteRequest, WebhookEvent, render_webhook_note
from .responses import install_error_handlers
from .verifier import AuthMode, WebhookVerifier

logger = logging.getLogger("traveler.ingress.webhook_server")


def parse_webhook_event(body: bytes) -> WebhookEvent:
    """
    Decode a webhook body.

    Raises:
        ValidationError: invalid_json for malformed JSON or a non-object,
            invalid_event when recognized fields have the wrong shape
    """
    try:
        parsed = json.loads(body)
    except ValueError as e:
        raise ValidationError("invalid_json", 400, f"Malformed JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise ValidationError("invalid_json", 400, "Top-level JSON must be an object")

    try:
        return WebhookEvent.model_validate(parsed)
    except PydanticValidationError as e:
        raise ValidationError("invalid_event", 400, str(e)) from e


def build_verifier(config: TravelerConfig) -> WebhookVerifier:
    """Webhook mode refuses to run open: a token, a secret, or both"""
    webhook = config.webhook
    mode = AuthMode.from_credentials(webhook.token, webhook.secret)
    if mode == AuthMode.OPEN:
        raise ConfigurationError("Missing WEBHOOK_TOKEN or WEBHOOK_SECRET")
    return WebhookVerifier(mode, token=webhook.token, secret=webhook.secret)


def create_webhook_app(config: TravelerConfig, note_client) -> FastAPI:
    """
    Build the webhook-to-notes app.

    Args:
        config: Loaded Traveler configuration (webhook section must be enabled)
        note_client: Object with ``async create_note(NoteRequest)`` (RoteClient)

    Raises:
        ConfigurationError: if the webhook is disabled or has no credentials
    """
    webhook = config.webhook
    if not webhook.enabled:
        raise ConfigurationError("Webhook server is disabled (set webhook.enabled: true)")

    verifier = build_verifier(config)
    persona_name = config.persona.name
    default_tags = list(config.rote.tags)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Webhook server ready on %s (auth: %s, max body: %d KB)",
            webhook.path, verifier.mode.value, webhook.max_body_kb,
        )
        yield
        close = getattr(note_client, "close", None)
        if close is not None:
            await close()

    app = FastAPI(
        title="Traveler Webhook",
        description="Authenticated webhooks to Rote notes",
        version=__version__,
        lifespan=lifespan,
        redirect_slashes=False,
    )
    install_error_handlers(app)

    @app.post(webhook.path)
    async def receive_webhook(request: Request) -> Dict[str, Any]:
        content_type = request.headers.get("content-type") or ""
        if "application/json" not in content_type:
            raise ValidationError("content_type", 415)

        body = await request.body()
        if len(body) > webhook.max_body_bytes:
            raise ValidationError("payload_too_large", 413)

        verifier.verify(body, request.headers)

        event = parse_webhook_event(body)
        note = render_webhook_note(event, persona_name)
        tags = event.tags or default_tags

        try:
            created = await note_client.create_note(NoteRequest.from_note(note, tags))
        except UpstreamError as e:
            logger.error("webhook_create_note_failed: %s", e)
            raise UpstreamError(str(e), code="rote_failed", status_code=500) from e

        logger.info("Webhook note written: %s %s", created.id, note.title)
        return {"ok": True, "id": created.id}

    return app
