"""Fehlertaxonomie des Chat Relay Gateways.

Jede Klasse trägt den HTTP-Status, mit dem sie an der Handler-Grenze
gerendert wird. Der Router wandelt sie in ``{"error": detail}`` um.
"""
from typing import Optional


class GatewayError(Exception):
    """Basisklasse aller Gateway-Fehler."""

    status_code = 500

    def __init__(self, detail: str, status_code: Optional[int] = None):
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(detail)


class ClientInputError(GatewayError):
    """Lokal erkannter Eingabefehler des Aufrufers; wird nie wiederholt."""

    status_code = 400


class MalformedBody(ClientInputError):
    pass


class InvalidMessages(ClientInputError):
    pass


class UnsupportedModel(ClientInputError):
    pass


class MethodNotAllowed(ClientInputError):
    status_code = 405


class UnsupportedMediaType(ClientInputError):
    status_code = 415


class UpstreamError(GatewayError):
    """Upstream hat mit Nicht-2xx oder unlesbarem Body geantwortet."""

    status_code = 502


class TransportError(GatewayError):
    """Verbindungs-, DNS- oder TLS-Fehler auf dem Weg zum Upstream."""

    status_code = 503


class DeadlineExceeded(GatewayError):
    status_code = 408


class ServerConfigurationError(GatewayError):
    """Fehlende Server-Konfiguration (z.B. kein API-Key); vor jedem Upstream-Call."""

    status_code = 500
