from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .config import Settings
from .errors import ConfigurationError, TransportError, UpstreamError
from .models import CompletionRequest, CompletionResponse

logger = logging.getLogger("routine_advisor.upstream")


class CompletionClient:
    """Thin wrapper around an OpenAI-style chat-completion endpoint."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        """Purpose: Capture endpoint, credential and fixed model parameters.
        Inputs/Outputs: Inputs are Settings and an optional httpx transport; no return value.
        Side Effects / State: None; an HTTP client is opened per call.
        Dependencies: Uses httpx and Settings from config.
        Failure Modes: None at init; a missing API key is reported by complete().
        If Removed: The relay has no way to reach the language-model API.
        Testing Notes: Inject httpx.MockTransport to stub the upstream API.
        """
        # Keep configuration; the credential never leaves this object.
        self._settings = settings
        self._transport = transport

    async def complete(self, messages: List[Dict[str, Any]]) -> CompletionResponse:
        """Purpose: Send one chat-completion request and validate the response shape.
        Inputs/Outputs: Input is the outbound message list; output is a CompletionResponse.
        Side Effects / State: Performs one HTTP POST; no retries.
        Dependencies: Uses httpx.AsyncClient, CompletionRequest and CompletionResponse.
        Failure Modes: ConfigurationError without an API key; UpstreamError on non-2xx;
            TransportError on network failure or an undecodable body.
        If Removed: The relay cannot produce replies.
        Testing Notes: Stub 200, 500 and non-JSON responses and check each outcome.
        """
        # Refuse to call upstream without a server-side credential.
        if not self._settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is required")

        body = CompletionRequest(
            model=self._settings.openai_model,
            messages=messages,
            max_tokens=self._settings.max_tokens,
            temperature=self._settings.temperature,
        )
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._settings.openai_api_key}",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.upstream_timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self._settings.upstream_url, json=body.model_dump(), headers=headers
                )
        except httpx.HTTPError as exc:
            raise TransportError(f"upstream request failed: {exc}") from exc

        if not response.is_success:
            logger.warning("upstream status=%s", response.status_code)
            raise UpstreamError(response.status_code, response.text)

        try:
            return CompletionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TransportError(f"malformed upstream response: {exc}") from exc
