"""
Error taxonomy shared by the curator and both ingress servers.

Errors that reach an HTTP boundary carry the status code and the short
machine-readable code rendered as ``{"ok": false, "error": code}``.
"""

from typing import Optional


class TravelerError(Exception):
    """Base class for Traveler errors."""

    status_code: Optional[int] = None
    code: str = "error"


class ConfigurationError(TravelerError):
    """Missing or invalid configuration. Fatal at startup."""

    code = "configuration"


class AuthenticationError(TravelerError):
    """Token or signature missing/invalid."""

    status_code = 401

    def __init__(self, reason: str):
        super().__init__(reason)
        self.code = reason

    @property
    def reason(self) -> str:
        return self.code


class ValidationError(TravelerError):
    """Request rejected before processing (route, method, type, size, body)."""

    def __init__(self, code: str, status_code: int = 400, message: str = ""):
        super().__init__(message or code)
        self.code = code
        self.status_code = status_code


class UpstreamError(TravelerError):
    """A downstream call (Rote, OpenClaw, feed fetch) failed."""

    status_code = 500
    code = "upstream_failed"

    def __init__(self, message: str = "", code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code


class StateError(TravelerError):
    """Dedupe state could not be read. Treated as empty state."""

    code = "state"
