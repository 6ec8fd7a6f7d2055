"""Request logging middleware.

Logs one line per API request with:
- Request ID (also returned as ``X-Request-ID``)
- HTTP method, path and redacted query string
- Response status and duration
- Client IP address
"""

import logging
import time
import uuid
from typing import Any, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Paths that should not be logged
EXCLUDED_PATHS = {
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
}

# Keys whose values never reach the log
SENSITIVE_FIELDS = {
    "password",
    "password_hash",
    "token",
    "accesstoken",
    "access_token",
    "refreshtoken",
    "refresh_token",
    "authorization",
    "secret",
}


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, honouring reverse proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


def redact_sensitive(data: Any) -> Any:
    """Replace the values of sensitive keys, recursively."""
    if isinstance(data, dict):
        return {
            k: "[REDACTED]" if str(k).lower() in SENSITIVE_FIELDS else redact_sensitive(v)
            for k, v in data.items()
        }
    elif isinstance(data, list):
        return [redact_sensitive(item) for item in data]
    return data


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXCLUDED_PATHS or request.url.path.endswith("/health"):
            return await call_next(request)

        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()
        client_ip = get_client_ip(request)

        response = await call_next(request)

        duration_ms = int((time.time() - start_time) * 1000)
        query = redact_sensitive(dict(request.query_params)) if request.query_params else None

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s %s%s -> %d (%dms) from %s",
            request_id,
            request.method,
            request.url.path,
            f" {query}" if query else "",
            response.status_code,
            duration_ms,
            client_ip,
        )

        response.headers["X-Request-ID"] = request_id
        return response
