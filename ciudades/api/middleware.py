import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ciudades.common.logging import get_logger
from ciudades.common.security import SESSION_COOKIE_NAME

logger = get_logger("middleware")

QUIET_PATHS = frozenset({"/health"})


def _log_level(path: str, status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code in (401, 502, 504):
        return logging.WARNING
    if path in QUIET_PATHS:
        return logging.DEBUG
    return logging.INFO


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Tag every response with a request id and its duration.

    The access line records whether a session cookie came with the request,
    so rejected dashboard calls can be told apart from expired sessions.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex[:12]
        has_session = SESSION_COOKIE_NAME in request.cookies

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        logger.log(
            _log_level(request.url.path, response.status_code),
            "[%s] %s %s -> %d in %.1fms (session=%s)",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            "yes" if has_session else "no",
        )

        response.headers["X-Request-Id"] = request_id
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"
        return response
