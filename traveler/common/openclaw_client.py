"""
OpenClaw Gateway Client

Invokes a tool on an OpenClaw agent gateway:

    POST {gateway_url}/tools/invoke
    Authorization: Bearer <token>
    body: {tool, action?, args, sessionKey?}

Any non-2xx response is an UpstreamError.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from .errors import ConfigurationError, UpstreamError

logger = logging.getLogger("traveler.common.openclaw_client")

ERROR_BODY_LIMIT = 500


class OpenClawClient:
    """Async client for the OpenClaw ``/tools/invoke`` endpoint."""

    def __init__(
        self,
        gateway_url: str,
        gateway_token: str,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        gateway_url = (gateway_url or "").strip().rstrip("/")
        if not gateway_url or not gateway_token:
            raise ConfigurationError("OpenClaw gateway URL and token are both required")

        self.gateway_url = gateway_url
        self._token = gateway_token
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def invoke(
        self,
        tool: str,
        action: Optional[str] = None,
        args: Optional[Dict[str, Any]] = None,
        session_key: Optional[str] = None,
    ) -> Any:
        """
        Invoke a gateway tool.

        Returns:
            Parsed JSON response, raw text if it is not JSON, or None if empty

        Raises:
            UpstreamError: on transport failure or non-2xx status
        """
        body: Dict[str, Any] = {"tool": tool, "args": args or {}}
        if action:
            body["action"] = action
        if session_key:
            body["sessionKey"] = session_key

        client = self._ensure_client()
        try:
            response = await client.post(
                f"{self.gateway_url}/tools/invoke",
                headers={"authorization": f"Bearer {self._token}"},
                json=body,
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"openclaw_invoke_failed error={e}") from e

        text = response.text
        if not response.is_success:
            raise UpstreamError(
                f"openclaw_invoke_failed status={response.status_code} body={text[:ERROR_BODY_LIMIT]}"
            )

        try:
            return json.loads(text) if text else None
        except json.JSONDecodeError:
            return text
