"""
Ingress - Inbound Webhooks

- create_webhook_app: authenticated JSON webhooks written as Rote notes
- create_receiver_app: passive receiver relaying events to OpenClaw
- WebhookVerifier: token / HMAC verification shared by both
"""

from .receiver import create_receiver_app, infer_source
from .verifier import (
    AuthMode,
    WebhookVerifier,
    hmac_sha256_hex,
    sign_body,
    timing_safe_equal,
)
from .webhook_server import create_webhook_app, parse_webhook_event

__all__ = [
    "create_receiver_app",
    "infer_source",
    "AuthMode",
    "WebhookVerifier",
    "hmac_sha256_hex",
    "sign_body",
    "timing_safe_equal",
    "create_webhook_app",
    "parse_webhook_event",
]
