"""
Standardized exception handling for the sample service
Provides consistent error types, formatting, and handling across all components
"""

import logging
from typing import Dict, Any, Optional, List
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sample_app.utils.time_format import format_instant


class ErrorSeverity(str, Enum):
    """Error severity levels for consistent categorization"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Error categories for consistent classification"""
    VALIDATION = "validation"
    MISSING_INPUT = "missing_input"
    INTERRUPTED = "interrupted"
    NOT_FOUND = "not_found"
    SYSTEM = "system"


class ErrorDetails(BaseModel):
    """Standardized error details structure"""
    code: str
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    timestamp: datetime
    context: Dict[str, Any] = {}
    violations: List[Dict[str, str]] = []


class SampleAppException(Exception):
    """
    Base exception class for all sample service errors
    Provides standardized error information and formatting
    """

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
        violations: Optional[List[Dict[str, str]]] = None
    ):
        super().__init__(message)
        self.details = ErrorDetails(
            code=code,
            message=message,
            category=category,
            severity=severity,
            timestamp=datetime.now(timezone.utc),
            context=context or {},
            violations=violations or []
        )

    @property
    def status_code(self) -> int:
        return status_code_for_category(self.details.category)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses"""
        if self.details.category == ErrorCategory.VALIDATION:
            return {"error": "Validation failed", "violations": self.details.violations}
        return {"error": self.details.message}

    def to_log_dict(self) -> Dict[str, Any]:
        """Convert exception to structured logging format"""
        return {
            "error_code": self.details.code,
            "error_message": self.details.message,
            "error_category": self.details.category.value,
            "error_severity": self.details.severity.value,
            "context": self.details.context
        }


class ValidationException(SampleAppException):
    """Raised when input validation fails"""

    def __init__(self, message: str, field: str, value: Any, **kwargs):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            context={"field": field, "value": str(value)[:100]},
            violations=[{"field": field, "message": message}],
            **kwargs
        )


class FeatureDisabledException(SampleAppException):
    """Raised when a gated endpoint is requested while its flag is off"""

    def __init__(self, feature: str, **kwargs):
        super().__init__(
            message="Not Found",
            code="FEATURE_DISABLED",
            category=ErrorCategory.NOT_FOUND,
            severity=ErrorSeverity.LOW,
            context={"feature": feature},
            **kwargs
        )


# Exception handlers for FastAPI

async def sample_app_exception_handler(request: Request, exc: SampleAppException) -> JSONResponse:
    """
    Global exception handler for sample service exceptions
    """
    logger = logging.getLogger("exception_handler")

    if exc.details.severity in (ErrorSeverity.LOW, ErrorSeverity.MEDIUM):
        logger.info(f"Request rejected: {exc.details.code}", extra=exc.to_log_dict())
    else:
        logger.error(f"Sample service exception occurred: {exc.details.code}", extra=exc.to_log_dict())

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=_get_error_headers(exc.details)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Maps declarative constraint violations to 400 Bad Request
    """
    logger = logging.getLogger("validation_handler")
    violations = [_to_violation(error) for error in exc.errors()]
    logger.info(f"Validation failed for {request.url.path}: {len(violations)} violation(s)")

    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "violations": violations}
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Handler for standard HTTP exceptions (unknown routes, wrong methods)
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None)
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort handler: log the full traceback, return a generic body
    """
    logger = logging.getLogger("exception_handler")
    logger.exception(f"Unhandled exception occurred on {request.method} {request.url.path}")

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred. Please try again later.",
            "timestamp": format_instant(datetime.now(timezone.utc))
        }
    )


# Violation messages for declarative constraints, keyed by (field, pydantic error type)
CONSTRAINT_MESSAGES: Dict[tuple, str] = {
    ("name", "string_too_short"): "Name must be between 1 and 100 characters",
    ("name", "string_too_long"): "Name must be between 1 and 100 characters",
    ("message", "string_too_short"): "Message must be between 1 and 10000 characters",
    ("message", "string_too_long"): "Message must be between 1 and 10000 characters",
    ("message", "missing"): "Message cannot be blank",
    ("delay", "greater_than_equal"): "Delay must be non-negative",
    ("delay", "less_than_equal"): "Delay cannot exceed 10000ms",
    ("iterations", "greater_than_equal"): "Iterations must be at least 1",
    ("iterations", "less_than_equal"): "Iterations cannot exceed 10000000",
}


# Utility functions

def status_code_for_category(category: ErrorCategory) -> int:
    """Map error categories to HTTP status codes"""
    category_status_map = {
        ErrorCategory.VALIDATION: 400,
        ErrorCategory.MISSING_INPUT: 400,
        ErrorCategory.NOT_FOUND: 404,
        ErrorCategory.INTERRUPTED: 503,
        ErrorCategory.SYSTEM: 500
    }
    return category_status_map.get(category, 500)


def _to_violation(error: Dict[str, Any]) -> Dict[str, str]:
    """Reduce a pydantic error to {field, message}, keeping only the last path segment"""
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "header")]
    field = loc[-1] if loc and error.get("type") != "json_invalid" else "body"
    message = CONSTRAINT_MESSAGES.get((field, error.get("type", "")), error.get("msg", "Invalid value"))
    # pydantic prefixes custom validator messages with "Value error, "
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return {"field": field, "message": message}


def _get_error_headers(error_details: ErrorDetails) -> Dict[str, str]:
    """Generate appropriate headers for error responses"""
    return {
        "X-Error-Code": error_details.code,
        "X-Error-Category": error_details.category.value
    }
