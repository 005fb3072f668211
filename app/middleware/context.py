"""
Request context middleware.

Assigns every request an id (the caller's X-Request-ID when it is safe to
log, a generated one otherwise), binds it with the method, path and client
address into structlog, echoes it back in the X-Request-ID response header
and writes one access log line per request.
"""

import re
import time
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.context import clear_context, generate_request_id, set_request_id
from app.core.rate_limit import get_client_ip

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_ID_LENGTH = 64
SAFE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_\-]+$")

# Paths that would flood the access log
QUIET_PREFIXES = ("/health", "/uploads/")


def _validate_id(value: Optional[str]) -> Optional[str]:
    """Accept a client id only if it is short and plain; newlines would forge log lines."""
    if not value or len(value) > MAX_ID_LENGTH:
        return None
    if not SAFE_ID_PATTERN.match(value):
        return None
    return value


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = _validate_id(request.headers.get(REQUEST_ID_HEADER)) or generate_request_id()

        clear_context()
        set_request_id(request_id)
        structlog.contextvars.bind_contextvars(
            method=request.method,
            path=request.url.path,
            client_ip=get_client_ip(request),
        )
        # Exception handlers read it from here for the correlationId
        request.state.request_id = request_id

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            if not request.url.path.startswith(QUIET_PREFIXES):
                logger.info(
                    "request",
                    status_code=status_code,
                    duration_ms=round((time.perf_counter() - started) * 1000, 1),
                )
            clear_context()
