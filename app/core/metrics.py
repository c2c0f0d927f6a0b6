"""Prometheus-Zähler für das Gateway. Jede Instanz hat ihre eigene Registry,
damit mehrere Apps (z.B. in Tests) nebeneinander existieren können."""
from typing import Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Histogram, generate_latest


class GatewayMetrics:
    """Rein beobachtend; keine Logik des Gateways hängt von den Werten ab."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.requests_total = Counter(
            "chat_gateway_requests_total",
            "Requests handled by the chat gateway",
            ["mode", "status"],
            registry=self.registry,
        )
        self.upstream_failures_total = Counter(
            "chat_gateway_upstream_failures_total",
            "Upstream calls that ended in a failure response",
            ["status"],
            registry=self.registry,
        )
        self.latency_seconds = Histogram(
            "chat_gateway_latency_seconds",
            "Time until the gateway produced its response",
            ["mode"],
            registry=self.registry,
        )

    def record_request(self, mode: str, status_code: int, elapsed_s: float) -> None:
        self.requests_total.labels(mode, str(status_code)).inc()
        self.latency_seconds.labels(mode).observe(elapsed_s)

    def record_upstream_failure(self, status_code: int) -> None:
        self.upstream_failures_total.labels(str(status_code)).inc()

    def request_count(self, mode: str, status_code: int) -> float:
        value = self.registry.get_sample_value(
            "chat_gateway_requests_total", {"mode": mode, "status": str(status_code)}
        )
        return value or 0.0

    def render(self) -> bytes:
        return generate_latest(self.registry)
