import json
import logging
import os
import time
import uuid
from typing import Any, Dict, Optional, Protocol, Tuple

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from sitegen.config import Settings, load_settings
from sitegen.llm_client import FailureKind, GatewayClient, GatewayFailure, GatewayOutcome
from sitegen.llm_parsing import ParseFailure, normalize_reply
from sitegen.llm_prompts import build_instructions
from sitegen.models import GenerationRequest


if not logging.getLogger().handlers:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

log = logging.getLogger(__name__)

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

FAILURE_RESPONSES: Dict[FailureKind, Tuple[int, str]] = {
    FailureKind.RATE_LIMITED: (429, "Rate limit exceeded. Please try again in a moment."),
    FailureKind.QUOTA_EXCEEDED: (402, "Usage limit reached. Please add credits to continue."),
    FailureKind.UPSTREAM_ERROR: (500, "Failed to generate website. Please try again."),
    FailureKind.TRANSPORT_ERROR: (500, "Failed to reach AI service. Please try again."),
    FailureKind.EMPTY_RESPONSE: (500, "No response from AI"),
}

PROMPT_REQUIRED = "Prompt is required"
INVALID_BODY = "Invalid JSON body"
NOT_CONFIGURED = "AI service not configured"
PARSE_FAILED = "Failed to parse AI response. Please try again."


class Gateway(Protocol):
    def complete(self, system: str, user: str) -> GatewayOutcome:
        ...


class InvalidBody(ValueError):
    """Request body is not valid JSON."""


def _error(status: int, message: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message}, headers=headers)


async def read_json_body(request: Request) -> Any:
    # Browsers and edge clients often send JSON as text/plain; decode whatever arrives.
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise InvalidBody(str(exc)) from exc


def create_app(settings: Optional[Settings] = None, gateway: Optional[Gateway] = None) -> FastAPI:
    """Build the generation API.

    The gateway is resolved here, once: a missing credential is reported at
    startup and every generation request then answers 500 "not configured".
    Tests pass a fake gateway instead of a real GatewayClient.
    """
    settings = settings or load_settings()
    if gateway is None and settings.has_token:
        gateway = GatewayClient(settings)
    if gateway is None:
        log.error("AI_GATEWAY_API_KEY is not configured; generation requests will fail")
    else:
        log.info(
            "gateway ready model=%s style=%s field_policy=%s",
            settings.model,
            settings.style,
            settings.field_policy,
        )

    app = FastAPI(title="Site Generator API")
    app.state.settings = settings
    app.state.gateway = gateway

    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        # Preflight never reaches the routes
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        response = await call_next(request)
        for key, value in CORS_HEADERS.items():
            response.headers[key] = value
        return response

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        rid = str(uuid.uuid4())
        start = time.time()
        request.state.request_id = rid
        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            dur_ms = int((time.time() - start) * 1000)
            log.info(
                "rid=%s method=%s path=%s status=%s dur_ms=%d",
                rid,
                request.method,
                request.url.path,
                getattr(response, "status_code", "?"),
                dur_ms,
            )

    @app.exception_handler(InvalidBody)
    async def invalid_body(request: Request, exc: InvalidBody):
        log.info("Rejected request body: %s", exc)
        return _error(400, INVALID_BODY)

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/llm/status")
    def llm_status() -> Dict[str, Any]:
        return {
            "model": settings.model,
            "has_token": app.state.gateway is not None,
            "style": settings.style,
            "field_policy": settings.field_policy,
        }

    @app.post("/{path:path}")
    def generate_website(path: str, payload: Any = Depends(read_json_body)):
        try:
            try:
                req = GenerationRequest.model_validate(payload)
            except ValidationError:
                return _error(400, PROMPT_REQUIRED)

            client = app.state.gateway
            if client is None:
                log.error("Generation requested but AI_GATEWAY_API_KEY is not configured")
                return _error(500, NOT_CONFIGURED)

            log.info("Generating website for prompt: %s", req.prompt[:200])
            system, user = build_instructions(req.prompt, settings.style)
            outcome = client.complete(system, user)

            if isinstance(outcome, GatewayFailure):
                status, message = FAILURE_RESPONSES[outcome.kind]
                headers = None
                if status == 429 and outcome.retry_after:
                    headers = {"Retry-After": outcome.retry_after}
                log.warning("Gateway failure kind=%s status=%s", outcome.kind.value, outcome.http_status)
                return _error(status, message, headers)

            try:
                result = normalize_reply(outcome.raw_text, settings.field_policy)
            except ParseFailure as exc:
                log.warning("Parse failure: %s", exc)
                return _error(500, PARSE_FAILED)

            log.info("Successfully generated website: %s", result.description[:200])
            return JSONResponse(result.model_dump())
        except Exception:
            log.exception("Unexpected error in generate_website")
            return _error(500, "Failed to generate website. Please try again.")

    return app


app = create_app()
