"""
Prometheus Metrics Module

Application metrics built on prometheus_client, exposed at ``/metrics``.
"""

import time
from collections.abc import Callable

from prometheus_client import Counter, Gauge, Histogram, Info
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# =============================================================================
# Application Info
# =============================================================================

APP_INFO = Info("translations_app", "Translation API information")


def set_app_info(version: str, environment: str) -> None:
    APP_INFO.info({"version": version, "environment": environment})


# =============================================================================
# HTTP Request Metrics
# =============================================================================

HTTP_REQUESTS_TOTAL = Counter(
    "translations_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "translations_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

# =============================================================================
# Database Metrics
# =============================================================================

DB_QUERIES_TOTAL = Counter(
    "translations_db_queries_total",
    "Total database queries executed",
    ["operation"],
)

DB_QUERY_DURATION_SECONDS = Histogram(
    "translations_db_query_duration_seconds",
    "Database query duration in seconds",
    ["operation"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

# =============================================================================
# Cache Metrics
# =============================================================================

REDIS_CONNECTED = Gauge(
    "translations_redis_connected",
    "Redis connection status (1 = connected, 0 = disconnected)",
)

CACHE_HITS_TOTAL = Counter(
    "translations_cache_hits_total",
    "Total cache hits",
    ["cache_type"],
)

CACHE_MISSES_TOTAL = Counter(
    "translations_cache_misses_total",
    "Total cache misses",
    ["cache_type"],
)

CACHE_INVALIDATIONS_TOTAL = Counter(
    "translations_cache_invalidations_total",
    "Total cache invalidations by outcome",
    ["result"],  # ok, failed
)

# =============================================================================
# Translation Metrics
# =============================================================================

TRANSLATION_OPERATIONS_TOTAL = Counter(
    "translations_operations_total",
    "Total translation store operations",
    ["operation"],  # create, update, delete, search, export
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect request count and latency per normalized endpoint."""

    EXCLUDED_PATHS = {"/metrics", "/health", "/favicon.ico"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if path in self.EXCLUDED_PATHS:
            return await call_next(request)

        method = request.method
        endpoint = self._normalize_path(path)
        start_time = time.perf_counter()

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            duration = time.perf_counter() - start_time
            HTTP_REQUEST_DURATION_SECONDS.labels(method=method, endpoint=endpoint).observe(duration)
            HTTP_REQUESTS_TOTAL.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()

        return response

    @staticmethod
    def _normalize_path(path: str) -> str:
        """/api/v1/translations/123 -> /api/v1/translations/{id}"""
        return "/".join("{id}" if part.isdigit() else part for part in path.split("/"))


def record_cache_hit(cache_type: str = "redis") -> None:
    CACHE_HITS_TOTAL.labels(cache_type=cache_type).inc()


def record_cache_miss(cache_type: str = "redis") -> None:
    CACHE_MISSES_TOTAL.labels(cache_type=cache_type).inc()


def record_cache_invalidation(ok: bool) -> None:
    CACHE_INVALIDATIONS_TOTAL.labels(result="ok" if ok else "failed").inc()


def record_translation_operation(operation: str) -> None:
    TRANSLATION_OPERATIONS_TOTAL.labels(operation=operation).inc()
