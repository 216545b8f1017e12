from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

import httpx
from pydantic import ValidationError

from .config import HISTORY_SEND_LIMIT
from .errors import ConfigurationError, RelayHTTPError, TransportError
from .models import Message, Product, RelayReply
from .utils import safe_json_loads, utc_now_iso

logger = logging.getLogger("routine_advisor.client")

PLACEHOLDER_MARKER = "REPLACE_WITH"


class RelayClient:
    """Client-side half of the relay exchange."""

    def __init__(
        self,
        relay_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._relay_url = (relay_url or "").strip()
        self._transport = transport
        self._timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self._relay_url) and PLACEHOLDER_MARKER not in self._relay_url

    async def send(self, messages: Sequence[Message], products: Sequence[Product]) -> RelayReply:
        """Purpose: Post the conversation tail and selected products to the relay.
        Inputs/Outputs: Inputs are the full conversation and the selected Products; output
            is the validated RelayReply.
        Side Effects / State: One HTTP POST; no retries.
        Dependencies: Uses httpx, extract_error_message and RelayReply.
        Failure Modes: ConfigurationError before any network call when the URL is unset or
            a placeholder; RelayHTTPError on non-2xx; TransportError on network failure
            or a malformed success body.
        If Removed: Chat messages and routine requests never reach the assistant.
        Testing Notes: Use httpx.MockTransport to check the payload and each failure branch.
        """
        # Fail fast locally when the endpoint was never configured.
        if not self.is_configured:
            raise ConfigurationError(
                "Relay URL not set. Set RELAY_URL to the deployed relay endpoint."
            )

        payload = {
            "messages": [{"role": m.role, "content": m.content} for m in list(messages)[-HISTORY_SEND_LIMIT:]],
            "products": [p.model_dump() for p in products],
            "now": utc_now_iso(),
        }
        kwargs = {"transport": self._transport}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        try:
            async with httpx.AsyncClient(**kwargs) as client:
                response = await client.post(self._relay_url, json=payload)
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

        body = safe_json_loads(response.text)
        if not response.is_success:
            message = extract_error_message(response.status_code, response.reason_phrase, response.text, body)
            logger.error("relay returned error status=%s body=%s", response.status_code, body or response.text)
            raise RelayHTTPError(response.status_code, message)

        return _parse_reply(body)


def extract_error_message(status_code: int, reason: str, text: str, body: Any) -> str:
    """Purpose: Pick the most human-readable message out of a relay error response.
    Inputs/Outputs: Inputs are status, reason phrase, raw text and decoded JSON (or None);
        output is the message string.
    Side Effects / State: None; pure function.
    Dependencies: json.dumps for structured bodies.
    Failure Modes: None; falls back to the reason phrase or "HTTP <status>".
    If Removed: Users see opaque status codes instead of upstream explanations.
    Testing Notes: Cover string error.body, nested error.body.error.message, top-level
        message, raw text, and an empty body.
    """
    # Structured error envelope takes precedence over everything else.
    if isinstance(body, dict) and body.get("error"):
        error = body["error"]
        nested = error.get("body") if isinstance(error, dict) else None
        if isinstance(nested, str):
            return nested
        if isinstance(nested, dict):
            inner = nested.get("error")
            if isinstance(inner, dict) and inner.get("message"):
                return str(inner["message"])
        return json.dumps(nested or error, ensure_ascii=False)
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    if text:
        return text
    return reason or f"HTTP {status_code}"


def _parse_reply(body: Any) -> RelayReply:
    # A success body must be a JSON object; a missing reply stays None.
    if not isinstance(body, dict):
        raise TransportError("Relay returned a malformed response body")
    try:
        return RelayReply.model_validate(body)
    except ValidationError as exc:
        raise TransportError(f"Relay returned an unexpected response shape: {exc.error_count()} error(s)") from exc
