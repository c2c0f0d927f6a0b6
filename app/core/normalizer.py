"""Übersetzt ein UpstreamOutcome in die Antwort des Gateways."""
import datetime
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse, StreamingResponse
from starlette.responses import Response

from app.core.models import ChatRequest, UpstreamFailure, UpstreamOutcome, UpstreamPayload, UpstreamStream

CORS_ORIGIN_HEADER = {"access-control-allow-origin": "*"}

# Verhindert Puffern/Umschreiben durch Proxies zwischen Gateway und Browser.
STREAM_HEADERS = {
    "cache-control": "no-cache, no-transform",
    "connection": "keep-alive",
    "x-accel-buffering": "no",
}

METADATA_KEY = "gateway"


def utc_timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def error_response(detail: str, status_code: int, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse({"error": detail}, status_code=status_code, headers={**CORS_ORIGIN_HEADER, **(headers or {})})


def _annotate(payload: Any, request: ChatRequest) -> Any:
    # Nur additiv: bestehende Upstream-Felder werden nie überschrieben.
    if not isinstance(payload, dict) or METADATA_KEY in payload:
        return payload
    return {
        **payload,
        METADATA_KEY: {
            "model": request.model,
            "message_count": len(request.messages),
            "timestamp": utc_timestamp(),
        },
    }


def normalize(outcome: UpstreamOutcome, request: ChatRequest, annotate: bool = False) -> Response:
    if isinstance(outcome, UpstreamStream):
        return StreamingResponse(
            outcome.chunks,
            status_code=200,
            media_type=outcome.media_type,
            headers={**CORS_ORIGIN_HEADER, **STREAM_HEADERS},
        )

    if isinstance(outcome, UpstreamPayload):
        payload = _annotate(outcome.payload, request) if annotate else outcome.payload
        return JSONResponse(payload, status_code=200, headers=CORS_ORIGIN_HEADER)

    if isinstance(outcome, UpstreamFailure):
        return error_response(outcome.detail, outcome.status_code)

    raise TypeError(f"Unknown upstream outcome: {outcome!r}")
