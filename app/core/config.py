"""Konfigurationsmodul für das Chat Relay Gateway: lädt Credential, Modell-
Allow-List, Längenlimits und Timeouts einmalig via Pydantic-Settings."""
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_MODELS = [
    "gpt-4.1-mini",
    "gpt-4.1",
    "gpt-4o-mini",
    "gpt-4o",
    "gpt-4-turbo",
    "gpt-4",
    "gpt-3.5-turbo",
]


class Settings(BaseSettings):
    """Hält alle konfigurierbaren Werte, die das Gateway zur Laufzeit
    benötigt (API-Key, Upstream, Limits, Timeouts). Wird pro Prozess einmal
    gelesen; Felder ohne Alias lesen die gleichnamige Env-Variable."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    openai_api_key: str = Field("", alias="OPENAI_API_KEY")  # Muss per Env gesetzt werden.
    upstream_base_url: str = "https://api.openai.com/v1"

    allowed_models: List[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_MODELS))
    default_model: str = "gpt-4.1-mini"
    max_messages: int = 100
    max_message_length: int = 500

    # Harte Deadlines für den gesamten Upstream-Call (Sekunden).
    request_timeout_s: float = 30.0
    stream_timeout_s: float = 60.0

    annotate_responses: bool = False

    log_file: str = "chat_debug.log"  # Leer = nur Konsole.
    log_level: str = "INFO"
    service_port: int = 1985


@lru_cache
def get_settings() -> Settings:
    return Settings()
