from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .completion_client import CompletionClient
from .config import Settings, configure_logging, load_settings
from .errors import InputError, RelayError, RoutineAdvisorError, UpstreamError
from .models import RelayReply, RelayRequest
from .relay import build_outbound_messages, load_system_instruction

BASE_DIR = Path(__file__).resolve().parent

ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=True)

logger = logging.getLogger("routine_advisor.relay")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}
RELAY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(
    settings: Optional[Settings] = None,
    completion_client: Optional[CompletionClient] = None,
) -> FastAPI:
    """Purpose: Build the relay FastAPI application.
    Inputs/Outputs: Optional Settings and CompletionClient overrides; returns a FastAPI app.
    Side Effects / State: Reads the system instruction prompt once; stores the CORS flag
        on app.state. No state is shared between requests.
    Dependencies: Uses CompletionClient, build_outbound_messages and register_error_handlers.
    Failure Modes: Missing prompt file raises FileNotFoundError.
    If Removed: The relay endpoint does not exist.
    Testing Notes: Pass a CompletionClient built on httpx.MockTransport and drive the app
        with fastapi.testclient.TestClient.
    """
    # Resolve configuration and collaborators, then wire the single relay route.
    settings = settings or load_settings()
    client = completion_client or CompletionClient(settings)
    system_instruction = load_system_instruction(settings)

    app = FastAPI(title="Routine Advisor Relay")
    app.state.cors_enabled = settings.cors_enabled
    register_error_handlers(app)

    @app.api_route("/", methods=RELAY_METHODS, include_in_schema=False)
    async def relay(request: Request) -> Response:
        """Forward one enriched chat request to the language-model API."""
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=_cors_headers(request))
        if request.method != "POST":
            raise InputError("Only POST allowed", status_code=405)

        relay_request = await _parse_relay_request(request)
        outbound = build_outbound_messages(relay_request, system_instruction)
        logger.info(
            "relay request turns=%s products=%s",
            len(relay_request.messages),
            len(relay_request.products),
        )
        try:
            completion = await client.complete(outbound)
        except RoutineAdvisorError:
            raise
        except Exception as exc:
            raise RelayError(str(exc)) from exc

        reply = RelayReply(reply=completion.first_content() or "")
        return JSONResponse(reply.model_dump(include={"reply"}), headers=_cors_headers(request))

    return app


def register_error_handlers(app: FastAPI) -> None:
    """
    Register centralized error handlers for the relay.

    Handles:
    - InputError -> its own 4xx status
    - UpstreamError -> 502 with the raw upstream text
    - Starlette HTTPException (unknown path, unrouted method) -> its own status
    - RoutineAdvisorError / Exception -> 500

    Every error response carries the CORS headers when they are enabled.
    """

    @app.exception_handler(InputError)
    async def handle_input_error(request: Request, error: InputError) -> Response:
        logger.info("rejected request: %s (%s)", error.message, error.status_code)
        return PlainTextResponse(error.message, status_code=error.status_code, headers=_cors_headers(request))

    @app.exception_handler(UpstreamError)
    async def handle_upstream_error(request: Request, error: UpstreamError) -> Response:
        logger.warning("upstream error status=%s", error.status_code)
        return PlainTextResponse(
            "Upstream error: " + error.body, status_code=502, headers=_cors_headers(request)
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, error: StarletteHTTPException) -> Response:
        headers = dict(error.headers or {})
        headers.update(_cors_headers(request))
        return PlainTextResponse(str(error.detail), status_code=error.status_code, headers=headers)

    @app.exception_handler(RoutineAdvisorError)
    async def handle_relay_error(request: Request, error: RoutineAdvisorError) -> Response:
        logger.error("relay failure: %s", error)
        return PlainTextResponse(f"Relay error: {error}", status_code=500, headers=_cors_headers(request))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, error: Exception) -> Response:
        logger.exception("unexpected relay failure")
        return PlainTextResponse(f"Relay error: {error}", status_code=500, headers=_cors_headers(request))


async def _parse_relay_request(request: Request) -> RelayRequest:
    # Decode the body ourselves so malformed JSON maps to 400 rather than 422.
    raw = await request.body()
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise InputError("Invalid JSON") from exc
    if not isinstance(payload, dict):
        raise InputError("Invalid request body: expected a JSON object")
    try:
        return RelayRequest.model_validate(payload)
    except ValidationError as exc:
        raise InputError(f"Invalid request body: {exc.error_count()} validation error(s)") from exc


def _cors_headers(request: Request) -> Dict[str, str]:
    if getattr(request.app.state, "cors_enabled", False):
        return dict(CORS_HEADERS)
    return {}


def main() -> None:
    """Run the relay with uvicorn."""
    uvicorn.run(
        app,
        host=os.getenv("RELAY_HOST", "0.0.0.0"),
        port=int(os.getenv("RELAY_PORT", "8787")),
    )


settings = load_settings()
configure_logging(settings.log_level)
app = create_app(settings)

if __name__ == "__main__":
    main()
