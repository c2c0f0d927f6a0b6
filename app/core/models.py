"""API-Modelle des Chat Relay Gateways: validierte Chat-Anfragen und
das Ergebnis eines Upstream-Calls."""
from dataclasses import dataclass
from typing import Any, AsyncIterator, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

Role = Literal["system", "user", "assistant"]
ROLES = ("system", "user", "assistant")


class ChatMessage(BaseModel):
    """Eine einzelne Nachricht der Konversation. Zusätzliche Felder (z.B.
    `name`) bleiben erhalten und werden unverändert weitergereicht."""

    model_config = ConfigDict(frozen=True, extra="allow")

    role: Role
    content: str


class ChatRequest(BaseModel):
    """Validierte Anfrage; `model` ist immer gesetzt und allow-listed."""

    model_config = ConfigDict(frozen=True)

    messages: List[ChatMessage]
    model: str
    stream: bool = False
    previous_response_id: Optional[str] = None
    use_responses_api: bool = False


@dataclass(frozen=True)
class UpstreamPayload:
    """Gepuffertes Ergebnis: das geparste JSON des Upstreams."""

    payload: Any


@dataclass(frozen=True)
class UpstreamStream:
    """Live-Stream des Upstreams. `chunks` liefert die Bytes unverändert
    und schließt die Upstream-Verbindung am Ende selbst."""

    chunks: AsyncIterator[bytes]
    media_type: str = "text/event-stream"


@dataclass(frozen=True)
class UpstreamFailure:
    status_code: int
    detail: str


UpstreamOutcome = Union[UpstreamPayload, UpstreamStream, UpstreamFailure]
