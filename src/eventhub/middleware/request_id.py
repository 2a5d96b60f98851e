"""Request ID middleware — correlates log lines across one request.

Learn: A request keeps the caller's X-Request-ID when it looks like a
token (letters, digits, `.`, `_`, `-`, up to 128 chars); anything else is
replaced with a fresh hex id so arbitrary header text never lands in the
logs. The id, method and path are bound to structlog's contextvars, so a
change log append failure deep in a service still names the request that
caused it. The completion line is written once the response headers are
ready, so for the SSE stream it marks the stream opening.
"""

import re
import time
import uuid
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

HEADER = "X-Request-ID"
_VALID_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")

logger = structlog.get_logger()


def resolve_request_id(incoming: Optional[str]) -> str:
    if incoming and _VALID_ID.match(incoming):
        return incoming
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log how it finished."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = resolve_request_id(request.headers.get(HEADER))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        response: Response = await call_next(request)
        response.headers[HEADER] = request_id
        logger.debug(
            "request.completed",
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response
