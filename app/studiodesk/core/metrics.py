from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from app.studiodesk.core.config import settings


@dataclass
class MetricsSnapshot:
    content: bytes
    content_type: str


class Metrics:
    def __init__(self) -> None:
        self.enabled = settings.METRICS_ENABLED
        self._registry = None
        self._http_requests_total = None
        self._http_request_duration_ms = None
        self._list_fetch_total = None
        self._list_fetch_duration_ms = None
        self._list_stale_response_total = None
        self._realtime_invalidation_total = None
        if self.enabled:
            self._initialize_registry()

    def _initialize_registry(self) -> None:
        self._registry = CollectorRegistry()
        self._http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by route/method/status.",
            ["route", "method", "status"],
            registry=self._registry,
        )
        self._http_request_duration_ms = Histogram(
            "http_request_duration_ms",
            "HTTP request latency in milliseconds.",
            ["route", "method", "status"],
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
            registry=self._registry,
        )
        self._list_fetch_total = Counter(
            "list_fetch_total",
            "List page fetches by entity/load kind/outcome.",
            ["entity", "kind", "outcome"],
            registry=self._registry,
        )
        self._list_fetch_duration_ms = Histogram(
            "list_fetch_duration_ms",
            "List page fetch latency in milliseconds.",
            ["entity"],
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000),
            registry=self._registry,
        )
        self._list_stale_response_total = Counter(
            "list_stale_response_total",
            "List responses discarded because a newer fetch was dispatched.",
            ["entity"],
            registry=self._registry,
        )
        self._realtime_invalidation_total = Counter(
            "realtime_invalidation_total",
            "Change notifications delivered to list invalidators.",
            ["table"],
            registry=self._registry,
        )

    def reset(self) -> None:
        if not self.enabled:
            return
        self._initialize_registry()

    def record_http_request(self, *, route: str, method: str, status_code: int, latency_ms: float) -> None:
        if not self.enabled:
            return
        labels = {"route": route, "method": method, "status": str(status_code)}
        self._http_requests_total.labels(**labels).inc()
        self._http_request_duration_ms.labels(**labels).observe(latency_ms)

    def record_list_fetch(self, *, entity: str, kind: str, outcome: str, latency_ms: float) -> None:
        if not self.enabled:
            return
        self._list_fetch_total.labels(entity=entity, kind=kind, outcome=outcome).inc()
        self._list_fetch_duration_ms.labels(entity=entity).observe(latency_ms)

    def increment_stale_response(self, entity: str) -> None:
        if not self.enabled:
            return
        self._list_stale_response_total.labels(entity=entity).inc()

    def increment_realtime_invalidation(self, table: str) -> None:
        if not self.enabled:
            return
        self._realtime_invalidation_total.labels(table=table).inc()

    def render(self) -> MetricsSnapshot:
        if not self.enabled:
            return MetricsSnapshot(content=b"metrics_disabled\n", content_type="text/plain")
        return MetricsSnapshot(content=generate_latest(self._registry), content_type=CONTENT_TYPE_LATEST)


metrics = Metrics()
