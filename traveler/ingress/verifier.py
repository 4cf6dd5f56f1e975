"""
Webhook Verifier

Token and HMAC-SHA256 signature checks for inbound webhooks.

Modes:
- OPEN: every request is authorized
- TOKEN_ONLY: bearer token (or dedicated token header) must match
- SIGNATURE_ONLY: HMAC of the raw body must match the signature header
- BOTH: token first, then signature; both must pass
"""

import hashlib
import hmac
from enum import Enum
from typing import Mapping, Optional, Sequence

from ..common.errors import AuthenticationError, ConfigurationError

SIGNATURE_PREFIX = "sha256="

REASON_TOKEN_INVALID = "token_invalid"
REASON_SIGNATURE_MISSING = "signature_missing"
REASON_SIGNATURE_INVALID = "signature_invalid"


class AuthMode(str, Enum):
    """How an ingress endpoint authenticates callers"""
    OPEN = "open"
    TOKEN_ONLY = "token_only"
    SIGNATURE_ONLY = "signature_only"
    BOTH = "both"

    @classmethod
    def from_credentials(cls, token: str = "", secret: str = "") -> "AuthMode":
        if token and secret:
            return cls.BOTH
        if token:
            return cls.TOKEN_ONLY
        if secret:
            return cls.SIGNATURE_ONLY
        return cls.OPEN

    @property
    def checks_token(self) -> bool:
        return self in (AuthMode.TOKEN_ONLY, AuthMode.BOTH)

    @property
    def checks_signature(self) -> bool:
        return self in (AuthMode.SIGNATURE_ONLY, AuthMode.BOTH)


def timing_safe_equal(a: str, b: str) -> bool:
    """
    Compare two strings without an early exit.

    Only a length mismatch returns early; otherwise every character pair is
    visited and the differences are XOR-accumulated.
    """
    if len(a) != len(b):
        return False
    result = 0
    for x, y in zip(a, b):
        result |= ord(x) ^ ord(y)
    return result == 0


def hmac_sha256_hex(secret: str, body: bytes) -> str:
    """Lowercase hex HMAC-SHA256 of ``body`` keyed by ``secret``"""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def sign_body(secret: str, body: bytes) -> str:
    """Signature header value (``sha256=<hex>``) for ``body``"""
    return SIGNATURE_PREFIX + hmac_sha256_hex(secret, body)


def parse_signature_header(value: Optional[str]) -> str:
    """Accept either ``sha256=<hex>`` or bare hex"""
    raw = (value or "").strip()
    if raw.startswith(SIGNATURE_PREFIX):
        return raw[len(SIGNATURE_PREFIX):]
    return raw


def extract_token(headers: Mapping[str, str], token_header: str = "x-webhook-token") -> str:
    """Bearer token from Authorization, else the dedicated token header"""
    auth = headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        bearer = auth[len("bearer "):]
        if bearer:
            return bearer
    return headers.get(token_header) or ""


class WebhookVerifier:
    """
    Verifies webhook authenticity for a configured AuthMode.

    Usage:
        verifier = WebhookVerifier.from_credentials(token=token, secret=secret)
        verifier.verify(body, request.headers)  # raises AuthenticationError
    """

    def __init__(
        self,
        mode: AuthMode,
        token: str = "",
        secret: str = "",
        signature_headers: Sequence[str] = ("x-webhook-signature", "x-hub-signature-256"),
        token_header: str = "x-webhook-token",
    ):
        """
        Initialize verifier.

        Args:
            mode: Which checks to apply
            token: Expected token (required for TOKEN_ONLY/BOTH)
            secret: HMAC shared secret (required for SIGNATURE_ONLY/BOTH)
            signature_headers: Headers searched, in order, for the signature
            token_header: Dedicated token header used when no bearer token is sent

        Raises:
            ConfigurationError: if the mode needs a credential that is missing
        """
        if mode.checks_token and not token:
            raise ConfigurationError(f"Auth mode {mode.value} requires a token")
        if mode.checks_signature and not secret:
            raise ConfigurationError(f"Auth mode {mode.value} requires a shared secret")

        self.mode = mode
        self._token = token
        self._secret = secret
        self._signature_headers = tuple(h.lower() for h in signature_headers)
        self._token_header = token_header.lower()

    @classmethod
    def from_credentials(cls, token: str = "", secret: str = "", **kwargs) -> "WebhookVerifier":
        return cls(AuthMode.from_credentials(token, secret), token=token, secret=secret, **kwargs)

    def _signature_from(self, headers: Mapping[str, str]) -> str:
        for name in self._signature_headers:
            value = headers.get(name)
            if value is not None:
                return parse_signature_header(value)
        return ""

    def check_token(self, headers: Mapping[str, str]) -> None:
        provided = extract_token(headers, self._token_header)
        if not provided or not timing_safe_equal(provided, self._token):
            raise AuthenticationError(REASON_TOKEN_INVALID)

    def check_signature(self, body: bytes, headers: Mapping[str, str]) -> None:
        provided = self._signature_from(headers)
        if not provided:
            raise AuthenticationError(REASON_SIGNATURE_MISSING)
        expected = hmac_sha256_hex(self._secret, body)
        if not timing_safe_equal(provided, expected):
            raise AuthenticationError(REASON_SIGNATURE_INVALID)

    def verify(self, body: bytes, headers: Mapping[str, str]) -> None:
        """
        Verify a request.

        Args:
            body: Exact raw request body
            headers: Request headers (any case; normalized to lowercase)

        Raises:
            AuthenticationError: with reason token_invalid, signature_missing
                or signature_invalid
        """
        if self.mode == AuthMode.OPEN:
            return

        normalized = {k.lower(): v for k, v in headers.items()}
        if self.mode.checks_token:
            self.check_token(normalized)
        if self.mode.checks_signature:
            self.check_signature(body, normalized)
