"""Chat-Router stellt den einzigen Endpunkt des Chat Relay Gateways bereit."""
import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from app.core.errors import GatewayError, MethodNotAllowed, ServerConfigurationError, UnsupportedMediaType
from app.core.models import UpstreamFailure, UpstreamStream
from app.core.normalizer import CORS_ORIGIN_HEADER, error_response, normalize, utc_timestamp
from app.core.validator import validate

router = APIRouter(tags=["Chat"])
logger = logging.getLogger(__name__)

# Alle Methoden landen im Handler, damit auch 405 den CORS-Header trägt.
ROUTE_METHODS = ["GET", "POST", "OPTIONS", "PUT", "PATCH", "DELETE", "HEAD"]

PREFLIGHT_HEADERS = {
    **CORS_ORIGIN_HEADER,
    "access-control-allow-methods": "POST, GET, OPTIONS",
    "access-control-allow-headers": "content-type, authorization",
    "access-control-max-age": "86400",
}

HEALTH_MESSAGE = "Chat endpoint is operational. Use POST for requests."


async def _handle_post(request: Request) -> Response:
    """Validieren -> Dispatchen -> Normalisieren.

    Reihenfolge der Gates:
    1) Credential vorhanden? Sonst 500, ohne Netzwerk-Call.
    2) Content-Type application/json? Sonst 415.
    3) Request-Validator (400 bei Fehlern).
    """
    settings = request.app.state.settings
    dispatcher = request.app.state.dispatcher
    metrics = request.app.state.metrics

    if not dispatcher.has_credential:
        logger.error("OPENAI_API_KEY is not configured")
        raise ServerConfigurationError("Server configuration error")

    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type.lower():
        raise UnsupportedMediaType("Content-Type must be application/json")

    chat_request = validate(await request.body(), settings)
    request.state.mode = "stream" if chat_request.stream else "buffered"

    outcome = await dispatcher.dispatch(chat_request)
    if isinstance(outcome, UpstreamFailure):
        metrics.record_upstream_failure(outcome.status_code)
    elif isinstance(outcome, UpstreamStream):
        logger.info(f"Relaying upstream stream for model {chat_request.model}")

    return normalize(outcome, chat_request, annotate=settings.annotate_responses)


async def _handle(request: Request) -> Response:
    method = request.method.upper()

    if method == "OPTIONS":
        request.state.mode = "preflight"
        return Response(status_code=204, headers=PREFLIGHT_HEADERS)

    if method == "GET":
        request.state.mode = "health"
        return JSONResponse(
            {"ok": True, "message": HEALTH_MESSAGE, "timestamp": utc_timestamp()},
            headers=CORS_ORIGIN_HEADER,
        )

    if method != "POST":
        request.state.mode = "rejected"
        raise MethodNotAllowed("Method not allowed")

    return await _handle_post(request)


@router.api_route("/chat", methods=ROUTE_METHODS)
async def chat_endpoint(request: Request) -> Response:
    """Haupt-Endpunkt: CORS-Preflight, Health-Check und Chat-Relay.

    Jeder Fehler wird hier abgefangen und als strukturierte JSON-Antwort
    mit CORS-Header zurückgegeben, nie als Verbindungsabbruch.
    """
    start = time.monotonic()
    request.state.mode = "post"
    try:
        response = await _handle(request)
    except GatewayError as exc:
        logger.warning(f"Request rejected ({exc.status_code}): {exc.detail}")
        response = error_response(exc.detail, exc.status_code)
    except Exception:
        logger.exception("Unexpected server error")
        response = error_response("Internal server error", 500)

    request.app.state.metrics.record_request(request.state.mode, response.status_code, time.monotonic() - start)
    return response
