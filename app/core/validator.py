"""Request-Validator des Chat Relay Gateways: prüft Body, Nachrichten und
Modell gegen die statische Konfiguration. Reine Funktion ohne Seiteneffekte."""
import json
from typing import Any, Optional, Union

from app.core.config import Settings
from app.core.errors import InvalidMessages, MalformedBody, UnsupportedModel
from app.core.models import ROLES, ChatMessage, ChatRequest


def _check_messages(messages: Any, settings: Settings) -> Optional[str]:
    """Liefert die erste Verletzung als Text oder None, wenn alles passt."""
    if not isinstance(messages, list):
        return "Messages must be an array"
    if not messages:
        return "Messages array cannot be empty"
    if len(messages) > settings.max_messages:
        return f"Too many messages (max {settings.max_messages})"

    for i, msg in enumerate(messages):
        if not isinstance(msg, dict):
            return f"Message at index {i} must be an object"

        role = msg.get("role")
        if not role or not isinstance(role, str):
            return f"Message at index {i} must have a 'role' string"

        content = msg.get("content")
        if not content or not isinstance(content, str):
            return f"Message at index {i} must have a 'content' string"

        if role not in ROLES:
            return f"Message at index {i} has invalid role '{role}'"

        if len(content) > settings.max_message_length:
            return (
                f"Message at index {i} exceeds maximum length "
                f"of {settings.max_message_length} characters"
            )
    return None


def _optional_flag(body: dict, *keys: str) -> bool:
    for key in keys:
        if key in body and body[key] is not None:
            if not isinstance(body[key], bool):
                raise MalformedBody(f"'{key}' must be a boolean")
            return body[key]
    return False


def validate(raw_body: Union[bytes, str], settings: Settings) -> ChatRequest:
    """Parst und prüft den rohen Request-Body.

    Raises:
        MalformedBody: kein JSON, kein Objekt oder falsch typisierte Felder.
        InvalidMessages: `messages` fehlt, ist leer, zu lang oder ein Eintrag
            ist ungültig (Index und Grund stehen in der Meldung).
        UnsupportedModel: `model` ist gesetzt, aber nicht allow-listed.
    """
    try:
        body = json.loads(raw_body)
    except (ValueError, TypeError, RecursionError) as exc:
        raise MalformedBody("Invalid JSON in request body") from exc

    if not isinstance(body, dict):
        raise MalformedBody("Request body must be a JSON object")

    messages = body.get("messages")
    violation = _check_messages(messages, settings)
    if violation:
        raise InvalidMessages(f"Invalid messages: {violation}")

    model = body.get("model")
    if model is None:
        model = settings.default_model
    elif not isinstance(model, str) or model not in settings.allowed_models:
        raise UnsupportedModel(f"Unsupported model: {model}")

    stream = _optional_flag(body, "stream")
    use_responses_api = _optional_flag(body, "useResponsesApi", "use_responses_api")

    previous_response_id = body.get("previous_response_id")
    if previous_response_id is not None and not isinstance(previous_response_id, str):
        raise MalformedBody("'previous_response_id' must be a string")

    return ChatRequest(
        messages=[ChatMessage.model_validate(m) for m in messages],
        model=model,
        stream=stream,
        previous_response_id=previous_response_id or None,
        use_responses_api=use_responses_api,
    )
