"""
Global Exception Handling

Every failure a tool can hit maps to one of a small set of exceptions.
They are recovered at the failing operation and turned into a single
structured JSON error; nothing is retried.
"""

import traceback
from typing import Optional, Dict, Any
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from image_toolbox.core.logging import get_logger, request_id_var, operation_var

logger = get_logger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================

class ToolboxError(Exception):
    """Base exception for Image Toolbox."""

    def __init__(
        self,
        message: str,
        code: int = 500,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.operation = operation or operation_var.get()
        self.details = details or {}
        super().__init__(self.message)


class InputValidationError(ToolboxError):
    """Bad format, bad size, empty prompt or out-of-range parameter."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code=400, **kwargs)


class ConfigurationError(ToolboxError):
    """A vendor credential or setting is missing."""

    def __init__(self, message: str, setting: Optional[str] = None, **kwargs):
        super().__init__(message, code=503, **kwargs)
        if setting:
            self.details["setting"] = setting


class ImageProcessingError(ToolboxError):
    """Local decode or encode failed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code=422, **kwargs)


class UpstreamError(ToolboxError):
    """A vendor API answered with a non-2xx status or could not be reached."""

    def __init__(
        self,
        message: str,
        service: str,
        http_status: Optional[int] = None,
        code: int = 502,
        **kwargs
    ):
        super().__init__(message, code=code, **kwargs)
        self.details["service"] = service
        self.details["http_status"] = http_status


class UpstreamTimeoutError(UpstreamError):
    """A vendor API did not answer within the configured timeout."""

    def __init__(self, service: str, timeout: float, display_name: Optional[str] = None, **kwargs):
        super().__init__(
            f"{display_name or service} did not respond within {timeout:g} seconds",
            service=service,
            code=504,
            **kwargs
        )


class MalformedUpstreamError(UpstreamError):
    """A vendor API answered 2xx but the payload is not what it promised."""

    def __init__(self, message: str, service: str, **kwargs):
        super().__init__(message, service=service, **kwargs)


# =============================================================================
# Exception Handlers
# =============================================================================

def error_body(exc: ToolboxError) -> Dict[str, Any]:
    return {
        "error": exc.message,
        "code": exc.code,
        "operation": exc.operation,
        "details": exc.details,
        "request_id": request_id_var.get(),
        "timestamp": datetime.utcnow().isoformat() + "Z"
    }


def register_exception_handlers(app: FastAPI):
    """Register custom exception handlers with FastAPI app."""

    @app.exception_handler(ToolboxError)
    async def toolbox_exception_handler(request: Request, exc: ToolboxError):
        log = logger.error if exc.code >= 500 else logger.warning
        log(
            "toolbox_exception",
            error=exc.message,
            code=exc.code,
            error_type=type(exc).__name__,
            details=exc.details,
            path=str(request.url.path)
        )

        return JSONResponse(status_code=exc.code, content=error_body(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ())[1:]),
                "message": error.get("msg"),
            }
            for error in exc.errors()
        ]
        logger.warning("request_validation_failed", path=str(request.url.path), errors=errors)

        message = errors[0]["message"] if errors else "Invalid request"
        return JSONResponse(
            status_code=400,
            content=error_body(InputValidationError(message, details={"errors": errors}))
        )


def internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    """
    500 envelope for an exception no handler claimed.

    Called from the request-id middleware while the request context is
    still bound, so request_id is filled in.
    """
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=str(request.url.path),
        traceback=traceback.format_exc()
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "code": 500,
            "operation": operation_var.get(),
            "details": {},
            "request_id": request_id_var.get(),
            "timestamp": datetime.utcnow().isoformat() + "Z"
        }
    )
