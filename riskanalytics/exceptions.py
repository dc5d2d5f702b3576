"""
Risk Analytics Exceptions.

Only caller errors are raised. Soft failures (too little history,
nothing correlated) come back as None / empty results, and arithmetic
edge cases degrade to documented fallback values inside each engine.
"""

from enum import Enum
from typing import Any, Dict, Optional

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


# ============================================================================
# ERROR CODES
# ============================================================================


class ErrorCode(str, Enum):
    """Engine error codes."""

    INTERNAL_ERROR = "E1000"
    INVALID_CONFIG = "E6000"
    INVALID_RANGE = "E6001"
    INVALID_INPUT = "E6002"


class ErrorDetail(BaseModel):
    """Structured error body returned to API clients."""

    error: str
    code: str
    details: Dict[str, Any] = {}
    request_id: Optional[str] = None


# ============================================================================
# EXCEPTIONS
# ============================================================================


class RiskAnalyticsError(Exception):
    """Base exception for the analytics engine."""

    status_code: int = 422

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorDetail:
        return ErrorDetail(
            error=self.message,
            code=self.code.value,
            details=self.details,
            request_id=request_id,
        )


class InvalidConfigError(RiskAnalyticsError):
    """Scenario configuration or iteration count rejected before computing."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.INVALID_CONFIG,
    ):
        merged = dict(details or {})
        if field is not None:
            merged["field"] = field
        self.field = field
        super().__init__(message=message, code=code, details=merged)


class InvalidRangeError(InvalidConfigError):
    """A sampling range whose lower bound exceeds its upper bound."""

    def __init__(self, low: float, high: float, field: Optional[str] = None):
        self.low = low
        self.high = high
        super().__init__(
            message=f"Invalid range [{low}, {high}]: lower bound exceeds upper bound",
            field=field,
            details={"low": low, "high": high},
            code=ErrorCode.INVALID_RANGE,
        )


class InvalidInputError(RiskAnalyticsError):
    """Observation data that cannot be evaluated (non-finite, negative counts)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=ErrorCode.INVALID_INPUT, details=details)


# ============================================================================
# HANDLERS
# ============================================================================


async def risk_analytics_exception_handler(
    request: Request,
    exc: RiskAnalyticsError,
) -> JSONResponse:
    """Turn engine caller errors into 422 responses."""
    request_id = getattr(request.state, "request_id", None)

    logger.warning(
        "risk_analytics_error",
        error_code=exc.code.value,
        message=exc.message,
        details=exc.details,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response(request_id).model_dump(),
    )


def register_exception_handlers(app) -> None:
    """Register engine exception handlers on a FastAPI app."""
    app.add_exception_handler(RiskAnalyticsError, risk_analytics_exception_handler)
