"""Prometheus metric definitions and helpers."""

from __future__ import annotations

import time

from prometheus_client import (  # type: ignore
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    Summary,
    generate_latest,
)

from ..config import settings

NAMESPACE = settings.METRICS_NAMESPACE

REQUEST_COUNTER = Counter(
    "requests_total",
    "Total HTTP requests",
    labelnames=("method", "path", "status"),
    namespace=NAMESPACE,
)

REQUEST_LATENCY = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=("method", "path"),
    namespace=NAMESPACE,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)

REQUEST_ERRORS = Counter(
    "request_errors_total",
    "Total HTTP request errors",
    labelnames=("method", "path", "status"),
    namespace=NAMESPACE,
)

RELATIONSHIP_CHANGES = Counter(
    "relationship_changes_total",
    "Relationship edge transitions by operation and resulting tier",
    labelnames=("operation", "result"),
    namespace=NAMESPACE,
)

POST_VOTES = Counter(
    "post_votes_total",
    "Votes cast on posts by direction",
    labelnames=("vote",),
    namespace=NAMESPACE,
)

DB_QUERY_DURATION = Summary(
    "db_query_duration_seconds",
    "Database query execution time",
    labelnames=("query",),
    namespace=NAMESPACE,
)


def observe_request(method: str, path: str, status_code: int, duration: float) -> None:
    """Record metrics for a processed HTTP request."""

    REQUEST_COUNTER.labels(method=method, path=path, status=status_code).inc()
    REQUEST_LATENCY.labels(method=method, path=path).observe(duration)
    if status_code >= 500:
        REQUEST_ERRORS.labels(method=method, path=path, status=status_code).inc()


def observe_relationship_change(operation: str, result: str) -> None:
    RELATIONSHIP_CHANGES.labels(operation=operation, result=result).inc()


def observe_vote(vote: str) -> None:
    POST_VOTES.labels(vote=vote).inc()


def metrics_response() -> tuple[bytes, str]:
    """Return serialized Prometheus metrics payload and content type."""

    return generate_latest(), CONTENT_TYPE_LATEST


class QueryTimer:
    """Context manager timing a labelled database query."""

    def __init__(self, label: str) -> None:
        self.label = label
        self._start: float | None = None

    def __enter__(self) -> QueryTimer:
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        if self._start is None:
            return
        DB_QUERY_DURATION.labels(query=self.label).observe(time.perf_counter() - self._start)
