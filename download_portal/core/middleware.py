"""Security middleware for token redaction and logging protection.

Download tokens are bearer capabilities carried in the URL path
(/downloads/token/{token}). Whoever holds an unused token can fetch the file
once, so the token string must never show up in logs, error traces or
Referer headers.
"""

import logging
import re
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

DOWNLOAD_TOKEN_PREFIX = "/downloads/token/"

# secrets.token_urlsafe output is base64url: letters, digits, "-" and "_"
DOWNLOAD_TOKEN_PATH_PATTERN = re.compile(r"(/downloads/token/)([A-Za-z0-9_-]+)")
TOKEN_REDACTED = "[TOKEN_REDACTED]"


def redact_token_from_path(path: str) -> str:
    """Redact download tokens from a URL path or any text containing one.

    Args:
        path: Text potentially containing a token URL

    Returns:
        The text with every token replaced by [TOKEN_REDACTED]
    """
    return DOWNLOAD_TOKEN_PATH_PATTERN.sub(rf"\1{TOKEN_REDACTED}", path)


def is_download_token_path(path: str) -> bool:
    """Check if a path is a token download URL."""
    return path.startswith(DOWNLOAD_TOKEN_PREFIX)


def _redact_value(value):
    return redact_token_from_path(value) if isinstance(value, str) else value


class TokenRedactionFilter(logging.Filter):
    """Logging filter that redacts download tokens from log records.

    Covers both the message and its %-format args, so uvicorn access lines
    ("GET /downloads/token/abc HTTP/1.1") are scrubbed too.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_token_from_path(record.msg)

        if record.args:
            if isinstance(record.args, tuple):
                record.args = tuple(_redact_value(arg) for arg in record.args)
            elif isinstance(record.args, dict):
                record.args = {k: _redact_value(v) for k, v in record.args.items()}

        # Always allow the record through (after redaction)
        return True


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add standard security headers to all responses.

    API responses additionally get a locked-down CSP and no-store caching.
    """

    def __init__(self, app, api_prefix: str = "/api"):
        super().__init__(app)
        self.api_prefix = api_prefix.rstrip("/")

    def is_api_path(self, path: str) -> bool:
        return path == self.api_prefix or path.startswith(f"{self.api_prefix}/")

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "0"
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers["Permissions-Policy"] = (
            "accelerometer=(), camera=(), geolocation=(), gyroscope=(), "
            "magnetometer=(), microphone=(), payment=(), usb=()"
        )

        if self.is_api_path(request.url.path):
            response.headers["Content-Security-Policy"] = (
                "default-src 'none'; frame-ancestors 'none'"
            )
            if "Cache-Control" not in response.headers:
                response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"

        return response


class TokenRedactionMiddleware(BaseHTTPMiddleware):
    """Stop token URLs leaking through the Referer header.

    Must be added after SecurityHeadersMiddleware so it runs outermost and
    its Referrer-Policy wins.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        original_path = request.url.path

        response = await call_next(request)

        if is_download_token_path(original_path):
            response.headers["Referrer-Policy"] = "no-referrer"

        return response


def install_token_redaction_logging() -> TokenRedactionFilter:
    """Install the token redaction filter on root and server loggers.

    Filters on a logger only apply to records logged directly to it, so the
    loggers that do not propagate to root need their own copy.
    """
    redaction_filter = TokenRedactionFilter()

    logging.getLogger().addFilter(redaction_filter)

    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "fastapi",
        "security.auth",
        "security.events",
        "download_portal",
    ):
        logging.getLogger(name).addFilter(redaction_filter)

    # Handlers see records propagated from child loggers too
    for handler in logging.getLogger().handlers:
        handler.addFilter(redaction_filter)

    return redaction_filter


def redact_exception_args(exc: Exception) -> Exception:
    """Redact download tokens from exception arguments before logging."""
    if exc.args:
        exc.args = tuple(_redact_value(arg) for arg in exc.args)
    return exc
