"""Prometheus metrics.

Exposed at /metrics for scraping when EXPOSE_METRICS is enabled.
"""

import re
import time

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, Info, generate_latest

from download_portal import __version__
from download_portal.core.config import settings

app_info = Info("download_portal", "Download portal application info")
app_info.info({
    "version": __version__,
    "environment": settings.ENVIRONMENT,
})

# HTTP request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Authentication metrics
auth_attempts_total = Counter(
    "auth_attempts_total",
    "Total authentication attempts",
    ["result"],  # success, failure
)

# Download token metrics
download_tokens_created_total = Counter(
    "download_tokens_created_total",
    "Total one-time download tokens created",
)

download_token_redemptions_total = Counter(
    "download_token_redemptions_total",
    "Download token redemption attempts",
    ["outcome"],  # redeemed, already_used, unknown
)

# File access metrics
file_access_blocked_total = Counter(
    "file_access_blocked_total",
    "Requested paths rejected by the file server",
    ["reason"],  # malformed, traversal
)


def get_metrics() -> Response:
    """Generate Prometheus metrics response."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def track_request_metrics(method: str, endpoint: str, status: int, duration: float):
    http_requests_total.labels(method=method, endpoint=endpoint, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)


def track_auth_attempt(result: str):
    """Track authentication attempt.

    Args:
        result: success or failure
    """
    auth_attempts_total.labels(result=result).inc()


def track_token_created():
    download_tokens_created_total.inc()


def track_token_redemption(outcome: str):
    download_token_redemptions_total.labels(outcome=outcome).inc()


def track_blocked_path(reason: str):
    file_access_blocked_total.labels(reason=reason).inc()


class MetricsMiddleware:
    """ASGI middleware for tracking request metrics."""

    # Collapse per-file and per-token paths so label cardinality stays bounded
    _PATH_PATTERNS = (
        (re.compile(r"^/downloads/token/.*$"), "/downloads/token/{token}"),
        (re.compile(r"^/downloads/public/.*$"), "/downloads/public/{path}"),
        (
            re.compile(r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"),
            "{id}",
        ),
    )

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        if path == "/metrics":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "UNKNOWN")
        start_time = time.time()
        status_code = 500  # Default in case of error

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration = time.time() - start_time
            track_request_metrics(method, self._normalize_path(path), status_code, duration)

    def _normalize_path(self, path: str) -> str:
        for pattern, replacement in self._PATH_PATTERNS:
            path = pattern.sub(replacement, path)
        return path
