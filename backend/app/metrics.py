"""Prometheus metrics for monitoring and observability."""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from functools import lru_cache

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

app_info = Info("obsidian_club", "Obsidian Social Club API information")
app_info.info({"version": "0.1.0", "service": "obsidian-club-api"})

# ==============================================================================
# HTTP METRICS
# ==============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

rate_limit_hits_total = Counter(
    "rate_limit_hits_total",
    "Requests rejected by the rate limiter",
)

# ==============================================================================
# ASSISTANT METRICS
# ==============================================================================

llm_attempts_total = Counter(
    "llm_attempts_total",
    "Chat completion attempts by model and outcome",
    ["model", "outcome"],
)

chat_replies_total = Counter(
    "chat_replies_total",
    "Chat endpoint replies by result",
    ["result"],
)

knowledge_fallbacks_total = Counter(
    "knowledge_fallbacks_total",
    "Knowledge blocks that fell back to static text",
    ["block"],
)

# ==============================================================================
# RESERVATION METRICS
# ==============================================================================

reservations_total = Counter(
    "reservations_total",
    "Reservations created by table type",
    ["table_type"],
)


@lru_cache(maxsize=2048)
def normalize_endpoint(path: str) -> str:
    """
    Normalize endpoint path to reduce cardinality.

    Examples:
        /reservations/3f1c0e0a-... -> /reservations/{id}
        /events/42 -> /events/{id}
    """
    path = re.sub(
        r"/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
        "/{id}",
        path,
        flags=re.IGNORECASE,
    )
    return re.sub(r"/\d+", "/{id}", path)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP request metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = normalize_endpoint(request.url.path)
        start_time = time.perf_counter()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - start_time
            )


def get_metrics() -> Response:
    """Generate Prometheus metrics response."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "PrometheusMiddleware",
    "chat_replies_total",
    "get_metrics",
    "http_request_duration_seconds",
    "http_requests_total",
    "knowledge_fallbacks_total",
    "llm_attempts_total",
    "normalize_endpoint",
    "rate_limit_hits_total",
    "reservations_total",
]
