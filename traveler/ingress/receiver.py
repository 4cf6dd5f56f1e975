"""
Passive Receiver

FastAPI app that accepts webhooks from any sender and relays them to an
OpenClaw gateway as a wake-up event for the agent to triage.

Endpoints:
- GET /healthz: Health check
- POST {WEBHOOK_PATH}: Webhook endpoint

Any other method on any path is 405; a POST elsewhere is 404.

Sources outside ALLOW_SOURCES are acknowledged and dropped, never rejected.
With RECEIVER_SHARED_SECRET set, the raw body must carry a valid
``x-signature-256`` HMAC; without it the receiver is open.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Mapping, Optional

from fastapi import FastAPI, Request

from .. import __version__
from ..common.config import ReceiverConfig
from ..common.errors import AuthenticationError, UpstreamError, ValidationError
from ..common.openclaw_client import OpenClawClient
from ..common.schemas import utc_now_iso
from .responses import install_error_handlers
from .verifier import AuthMode, WebhookVerifier

logger = logging.getLogger("traveler.ingress.receiver")

SERVICE_NAME = "traveler-receiver"
SOURCE_HEADER = "x-traveler-source"
SIGNATURE_HEADER = "x-signature-256"
FORWARDED_HEADERS = ("x-github-event", "x-github-delivery")
NON_POST_METHODS = ["GET", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def infer_source(headers: Mapping[str, str]) -> str:
    """Explicit source header, else "github" for GitHub deliveries, else "custom" """
    explicit = (headers.get(SOURCE_HEADER) or "").strip()
    if explicit:
        return explicit
    if headers.get("x-github-event"):
        return "github"
    return "custom"


def decode_body(body: bytes) -> Any:
    """Parsed JSON when possible, raw text otherwise"""
    text = body.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


def build_envelope(source: str, headers: Mapping[str, str], body: bytes) -> Dict[str, Any]:
    return {
        "source": source,
        "receivedAt": utc_now_iso(),
        "headers": {name: headers.get(name) for name in FORWARDED_HEADERS},
        "body": decode_body(body),
    }


def build_relay_text(source: str, envelope: Dict[str, Any]) -> str:
    """Instruction block handed to the agent"""
    return "\n".join([
        f"[Traveler] Passive event received ({source})",
        "",
        "Context (structured):",
        json.dumps(envelope, ensure_ascii=False, separators=(",", ":")),
        "",
        "Instruction:",
        "- Decide whether to record this as a Rote note.",
        "- If you write to Rote, include the source + why it matters.",
    ])


def create_receiver_app(
    config: ReceiverConfig,
    gateway_client: Optional[OpenClawClient] = None,
) -> FastAPI:
    """
    Build the passive receiver app.

    Args:
        config: Receiver configuration
        gateway_client: OpenClaw client; built from config when omitted and
            both gateway URL and token are set. None disables relaying.
    """
    if config.shared_secret:
        verifier = WebhookVerifier(
            AuthMode.SIGNATURE_ONLY,
            secret=config.shared_secret,
            signature_headers=(SIGNATURE_HEADER,),
        )
    else:
        verifier = WebhookVerifier(AuthMode.OPEN)

    if gateway_client is None and config.gateway_configured:
        gateway_client = OpenClawClient(
            gateway_url=config.gateway_url,
            gateway_token=config.gateway_token,
            timeout=config.http_timeout,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if verifier.mode == AuthMode.OPEN:
            logger.warning("RECEIVER_SHARED_SECRET not set: accepting unsigned webhooks")
        if gateway_client is None:
            logger.warning("OpenClaw gateway not configured: events will not be forwarded")
        logger.info("%s ready on %s", SERVICE_NAME, config.path)
        yield
        if gateway_client is not None:
            await gateway_client.close()

    app = FastAPI(
        title="Traveler Receiver",
        description="Passive webhook relay to an OpenClaw gateway",
        version=__version__,
        lifespan=lifespan,
        redirect_slashes=False,
    )
    install_error_handlers(app)

    @app.get("/healthz")
    async def healthz() -> Dict[str, Any]:
        """Health check endpoint"""
        return {"ok": True, "service": SERVICE_NAME}

    @app.post(config.path)
    async def receive(request: Request) -> Dict[str, Any]:
        source = infer_source(request.headers)
        if config.allow_sources and source not in config.allow_sources:
            logger.info("Ignoring event from source %s (not allowed)", source)
            return {"ok": True, "ignored": True, "reason": f"source_not_allowed:{source}"}

        body = await request.body()
        try:
            verifier.verify(body, request.headers)
        except AuthenticationError as e:
            logger.warning("Rejected %s event: %s", source, e.reason)
            raise AuthenticationError("signature_verification_failed") from e

        if gateway_client is None:
            return {"ok": True, "forwarded": False}

        envelope = build_envelope(source, request.headers, body)
        try:
            await gateway_client.invoke(
                tool="cron",
                action="wake",
                args={"text": build_relay_text(source, envelope), "mode": "now"},
                session_key=config.session_key or None,
            )
        except UpstreamError as e:
            logger.error("Relay to OpenClaw failed: %s", e)
            raise UpstreamError(str(e), code="relay_failed", status_code=502) from e

        logger.info("Forwarded %s event to OpenClaw", source)
        return {"ok": True, "forwarded": True}

    # Registered last: any non-POST request outside /healthz is 405 on every path
    @app.api_route("/{path:path}", methods=NON_POST_METHODS, include_in_schema=False)
    async def method_not_allowed(path: str) -> Dict[str, Any]:
        raise ValidationError("method_not_allowed", 405)

    return app
