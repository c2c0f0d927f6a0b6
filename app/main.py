"""FastAPI-Einstiegspunkt für das Chat Relay Gateway."""
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI
from starlette.responses import Response

from app.core.config import Settings, get_settings
from app.core.dispatcher import UpstreamDispatcher
from app.core.logging_setup import setup_logging
from app.core.metrics import GatewayMetrics
from app.routers import chat as chat_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    dispatcher: Optional[UpstreamDispatcher] = None,
    metrics: Optional[GatewayMetrics] = None,
) -> FastAPI:
    """Baut die App mit expliziter Konfiguration.

    - Settings werden einmal gelesen und danach nur noch gelesen.
    - Der Dispatcher bekommt den API-Key direkt, nicht über die Umgebung.
    - Metrics sind injiziert und pro App isoliert.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Chat Relay Gateway",
        version="1.0.0",
        description="Stateless relay between browser chat clients and an LLM completion API.",
    )
    app.state.settings = settings
    app.state.dispatcher = dispatcher or UpstreamDispatcher(settings.openai_api_key, settings)
    app.state.metrics = metrics or GatewayMetrics()

    @app.get("/metrics", include_in_schema=False)
    def get_metrics() -> Response:
        return Response(app.state.metrics.render(), media_type=app.state.metrics.content_type)

    # Router registrieren
    app.include_router(chat_router.router)

    if not app.state.dispatcher.has_credential:
        logger.warning("OPENAI_API_KEY is not set; every POST /chat will answer 500.")
    return app


_settings = get_settings()
# Setup Logging (File + Console)
setup_logging(_settings.log_file or None, _settings.log_level)

app = create_app(_settings)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=_settings.service_port)
