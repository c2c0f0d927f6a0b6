"""Upstream-Dispatcher des Chat Relay Gateways: baut den ausgehenden
Completion-Request, setzt eine harte Deadline und übersetzt das Ergebnis
in ein UpstreamOutcome (Payload, Stream oder Failure)."""
import asyncio
import json
import logging
from typing import Any, AsyncIterator, Callable, Dict, Optional, Tuple

import httpx

from app.core.config import Settings
from app.core.errors import DeadlineExceeded, GatewayError, TransportError, UpstreamError
from app.core.models import ChatRequest, UpstreamFailure, UpstreamOutcome, UpstreamPayload, UpstreamStream

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = "/chat/completions"
RESPONSES_PATH = "/responses"


def _default_client_factory(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout)


def extract_error_detail(status_code: int, text: str) -> str:
    """Holt die Fehlermeldung aus dem Upstream-Body: JSON `error.message`,
    sonst der rohe Text, sonst eine generische Statusmeldung."""
    try:
        data = json.loads(text) if text else None
    except ValueError:
        data = None

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return text or f"HTTP {status_code}"


def _upstream_error(status_code: int, text: str) -> UpstreamError:
    detail = extract_error_detail(status_code, text)
    logger.error(f"Upstream error (HTTP {status_code}): {detail}")
    return UpstreamError(f"AI service error: {detail}")


def _responses_input(request: ChatRequest) -> list:
    # Responses API erwartet strukturierte Inhalte statt Plaintext.
    return [
        {
            "role": msg.role,
            "content": [
                {
                    "type": "output_text" if msg.role == "assistant" else "input_text",
                    "text": msg.content,
                }
            ],
        }
        for msg in request.messages
    ]


class UpstreamDispatcher:
    """Sendet genau einen Call pro Gateway-Request an den Completion-Service.

    Es gibt bewusst keine Retries: der Call ist kostenpflichtig und hat ggf.
    schon Tokens gestreamt, Wiederholung entscheidet der Aufrufer.
    """

    def __init__(
        self,
        api_key: str,
        settings: Settings,
        client_factory: Optional[Callable[..., httpx.AsyncClient]] = None,
    ) -> None:
        self.api_key = api_key
        self.settings = settings
        self.base_url = settings.upstream_base_url.rstrip("/")
        self._client_factory = client_factory or _default_client_factory

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)

    def build_payload(self, request: ChatRequest) -> Tuple[str, Dict[str, Any]]:
        """Liefert (URL, JSON-Body) für den ausgehenden Request."""
        if request.use_responses_api:
            payload: Dict[str, Any] = {"model": request.model, "input": _responses_input(request)}
            if request.previous_response_id:
                payload["previous_response_id"] = request.previous_response_id
            url = self.base_url + RESPONSES_PATH
        else:
            payload = {
                "model": request.model,
                "messages": [msg.model_dump() for msg in request.messages],
            }
            url = self.base_url + CHAT_COMPLETIONS_PATH

        if request.stream:
            payload["stream"] = True
        return url, payload

    def _headers(self, stream: bool) -> Dict[str, str]:
        headers = {
            "authorization": f"Bearer {self.api_key}",
            "content-type": "application/json",
        }
        if stream:
            headers["accept"] = "text/event-stream"
        return headers

    async def dispatch(self, request: ChatRequest) -> UpstreamOutcome:
        url, payload = self.build_payload(request)
        logger.info(
            f"Upstream request: model={request.model} stream={request.stream} "
            f"responses_api={request.use_responses_api} messages={len(request.messages)}"
        )
        try:
            if request.stream:
                return await self._open_stream(url, payload)
            return await self._post_buffered(url, payload)
        except GatewayError as exc:
            return UpstreamFailure(exc.status_code, exc.detail)

    async def _post_buffered(self, url: str, payload: Dict[str, Any]) -> UpstreamPayload:
        timeout = self.settings.request_timeout_s
        client = self._client_factory(timeout=timeout)
        try:
            # wait_for bricht den laufenden Call bei Ablauf der Deadline ab.
            response = await asyncio.wait_for(
                client.post(url, json=payload, headers=self._headers(stream=False)),
                timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning(f"Upstream request exceeded deadline of {timeout}s")
            raise DeadlineExceeded("Request timeout") from exc
        except httpx.TransportError as exc:
            logger.error(f"Network error while calling upstream: {exc!r}")
            raise TransportError("Network error") from exc
        except httpx.DecodingError as exc:
            logger.error(f"Failed to decode upstream response body: {exc!r}")
            raise UpstreamError("Invalid response from AI service") from exc
        finally:
            await client.aclose()

        if not response.is_success:
            raise _upstream_error(response.status_code, response.text)

        try:
            data = json.loads(response.text)
        except ValueError as exc:
            logger.error("Failed to parse upstream response body")
            raise UpstreamError("Invalid response from AI service") from exc
        return UpstreamPayload(data)

    async def _open_stream(self, url: str, payload: Dict[str, Any]) -> UpstreamStream:
        timeout = self.settings.stream_timeout_s
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        client = self._client_factory(timeout=timeout)
        request = client.build_request("POST", url, json=payload, headers=self._headers(stream=True))

        try:
            response = await asyncio.wait_for(client.send(request, stream=True), timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            await client.aclose()
            logger.warning(f"Upstream stream did not start within {timeout}s")
            raise DeadlineExceeded("Request timeout") from exc
        except httpx.TransportError as exc:
            await client.aclose()
            logger.error(f"Network error while opening upstream stream: {exc!r}")
            raise TransportError("Network error") from exc

        if response.is_success:
            return UpstreamStream(chunks=self._relay(client, response, deadline))

        # Fehler-Body ist klein; er wird noch innerhalb der Deadline gelesen.
        try:
            await asyncio.wait_for(response.aread(), max(deadline - loop.time(), 0.0))
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise DeadlineExceeded("Request timeout") from exc
        except httpx.TransportError as exc:
            logger.error(f"Network error while reading upstream error body: {exc!r}")
            raise TransportError("Network error") from exc
        except httpx.DecodingError as exc:
            logger.error(f"Failed to decode upstream error body: {exc!r}")
            raise UpstreamError("Invalid response from AI service") from exc
        finally:
            await response.aclose()
            await client.aclose()
        raise _upstream_error(response.status_code, response.text)

    async def _relay(
        self, client: httpx.AsyncClient, response: httpx.Response, deadline: float
    ) -> AsyncIterator[bytes]:
        """Reicht die Upstream-Chunks unverändert weiter, bis der Upstream
        schließt oder die Deadline abläuft. Schließt danach beide Verbindungen."""
        loop = asyncio.get_running_loop()
        chunks = response.aiter_bytes()
        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    logger.warning("Upstream stream exceeded deadline; closing connection")
                    break
                try:
                    chunk = await asyncio.wait_for(chunks.__anext__(), remaining)
                except StopAsyncIteration:
                    break
                except (asyncio.TimeoutError, httpx.TimeoutException):
                    logger.warning("Upstream stream exceeded deadline; closing connection")
                    break
                except httpx.TransportError as exc:
                    # Header sind bereits gesendet, es bleibt nur das Schließen.
                    logger.error(f"Upstream stream aborted: {exc!r}")
                    break
                except httpx.DecodingError as exc:
                    logger.error(f"Upstream stream could not be decoded: {exc!r}")
                    break
                yield chunk
        finally:
            await response.aclose()
            await client.aclose()
