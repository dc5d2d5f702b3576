"""
Request Context Middleware.

Every analytics call gets a request_id so a simulation or scoring run can
be traced from the API log line to the engine events it emitted
(``simulation_completed``, ``risk_score_computed``, ...).

An upstream X-Request-ID is honoured when it is a sane token; anything
else is replaced by a fresh UUID4. The id is echoed in the response and
bound into structlog contextvars together with method and path.
"""

import re
import time
import uuid
from typing import Optional

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
RESPONSE_TIME_HEADER = "X-Response-Time"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")
_QUIET_PATHS = frozenset({"/health"})


def resolve_request_id(header_value: Optional[str]) -> str:
    if header_value and _VALID_REQUEST_ID.match(header_value):
        return header_value
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds request_id into the log context and times each call."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[RESPONSE_TIME_HEADER] = f"{elapsed_ms}ms"

        # Liveness probes would drown the analytics log
        log = logger.debug if request.url.path in _QUIET_PATHS else logger.info
        log("request_completed", status=response.status_code, elapsed_ms=elapsed_ms)
        return response
