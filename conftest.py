import json
import os

# Vor dem Import der App setzen: keine Log-Datei in Testläufen.
os.environ.setdefault("LOG_FILE", "")

import httpx
import pytest

from app.core.config import Settings
from app.core.dispatcher import UpstreamDispatcher


class FakeUpstream:
    """Simulierter Completion-Service auf Basis von httpx.MockTransport.
    Merkt sich jeden eingehenden Request."""

    def __init__(self):
        self.calls = []
        self.responder = lambda request: httpx.Response(
            200, json={"id": "chatcmpl-1", "choices": [{"message": {"role": "assistant", "content": "Hallo!"}}]}
        )

    def handler(self, request: httpx.Request):
        self.calls.append(request)
        return self.responder(request)

    def client_factory(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), timeout=timeout)

    def last_json(self):
        return json.loads(self.calls[-1].content)


@pytest.fixture
def settings():
    return Settings(
        OPENAI_API_KEY="sk-test",
        upstream_base_url="https://upstream.test/v1",
        log_file="",
        request_timeout_s=2.0,
        stream_timeout_s=2.0,
    )


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def dispatcher(settings, upstream):
    return UpstreamDispatcher(settings.openai_api_key, settings, client_factory=upstream.client_factory)
