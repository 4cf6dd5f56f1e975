"""
Rote Client

Async client for the Rote open-key notes API.

    POST {api_base}/openkey/notes?openkey={key}
    body: {openkey, content, title?, state?, type?, tags?, pin?}
    response: {code, message, data}

A non-2xx status or ``code != 0`` is an UpstreamError. The client never
retries; callers decide what a failure means for them.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from .config import RoteApiConfig
from .errors import ConfigurationError, UpstreamError
from .schemas import CreatedNote, NoteRequest

logger = logging.getLogger("traveler.common.rote_client")


class RoteClient:
    """
    Async client for Rote note creation.

    Usage:
        client = RoteClient(api_base="https://rote.example.com/v2/api", openkey="...")
        created = await client.create_note(NoteRequest(content="hello", tags=["inbox"]))
        await client.close()
    """

    def __init__(
        self,
        api_base: str,
        openkey: str,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize Rote client.

        Args:
            api_base: Rote API base URL (trailing slashes are stripped)
            openkey: Rote open key, sent both as query parameter and in the body
            timeout: Request timeout in seconds
            http_client: Optional pre-built httpx client (not closed by us)
        """
        api_base = (api_base or "").strip().rstrip("/")
        openkey = (openkey or "").strip()
        if not api_base:
            raise ConfigurationError("Missing ROTE_API_BASE")
        if not openkey:
            raise ConfigurationError("Missing ROTE_OPENKEY")

        self.api_base = api_base
        self._openkey = openkey
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_config(cls, config: RoteApiConfig, timeout: float = 30.0) -> "RoteClient":
        return cls(api_base=config.api_base, openkey=config.openkey, timeout=timeout)

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client if we created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        client = self._ensure_client()
        payload = {"openkey": self._openkey, **body} if body is not None else None

        try:
            response = await client.request(
                method,
                self.api_base + path,
                params={"openkey": self._openkey},
                headers={"accept": "application/json"},
                json=payload,
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"Rote request failed: {e}") from e

        text = response.text
        try:
            data = json.loads(text) if text else None
        except json.JSONDecodeError:
            data = text

        if not response.is_success:
            detail = data if isinstance(data, str) else json.dumps(data)
            raise UpstreamError(f"Rote HTTP {response.status_code}: {detail}")

        if not isinstance(data, dict) or data.get("code") != 0:
            message = data.get("message") if isinstance(data, dict) else None
            raise UpstreamError(f"Rote error: {message or 'unknown'}")

        return data.get("data")

    async def create_note(self, request: NoteRequest) -> CreatedNote:
        """
        Create a note.

        Raises:
            UpstreamError: on transport failure, non-2xx status or non-zero code
        """
        data = await self._request("POST", "/openkey/notes", request.model_dump(exclude_none=True))
        try:
            created = CreatedNote.model_validate(data)
        except ValueError as e:
            raise UpstreamError(f"Rote returned an unexpected note: {data!r}") from e

        logger.debug("Created Rote note %s", created.id)
        return created
