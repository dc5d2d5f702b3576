"""
Global Error Handler Middleware.

Outermost layer. Caller errors (RiskAnalyticsError) are already turned
into 422 responses by the registered exception handler; whatever still
escapes here is a defect in the service. It is logged with a fresh
error_id and answered with the same ErrorDetail shape the 422 path uses,
so clients parse one error format.
"""

import uuid

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from riskanalytics.config import settings
from riskanalytics.exceptions import ErrorCode, ErrorDetail

logger = structlog.get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "An internal error occurred. Please try again later."


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Returns:
    {
      "error": "human-readable message",
      "code": "E1000",
      "details": {"error_id": "uuid for log correlation"},
      "request_id": "..."
    }

    Stack traces and engine internals never leave the process; with DEBUG
    on, only the exception class name is added as ``debug_hint``.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            error_id = str(uuid.uuid4())
            logger.exception(
                "unhandled_exception",
                error_id=error_id,
                path=request.url.path,
                method=request.method,
            )

            details: dict = {"error_id": error_id}
            if settings.debug:
                details["debug_hint"] = type(exc).__name__

            body = ErrorDetail(
                error=INTERNAL_ERROR_MESSAGE,
                code=ErrorCode.INTERNAL_ERROR.value,
                details=details,
                request_id=getattr(request.state, "request_id", None),
            )
            return JSONResponse(status_code=500, content=body.model_dump())
