"""
Global exception handlers and custom exception classes.

Every error leaves the API as a JSON envelope ``{"success": false, "message": ...}``,
optionally with a machine ``code`` or a list of field ``errors``.
"""
from typing import Any, Dict, List, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging

# Set up logging
logger = logging.getLogger(__name__)

class AppException(Exception):
    """
    Base exception class for application-specific exceptions.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        self.code = code
        super().__init__(self.message)

    def to_content(self) -> Dict[str, Any]:
        content: Dict[str, Any] = {"success": False, "message": self.message}
        if self.code:
            content["code"] = self.code
        return content


class ValidationError(AppException):
    """Raised when a payload is malformed; lists the offending fields."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_content(self) -> Dict[str, Any]:
        content = super().to_content()
        content["errors"] = self.errors
        return content


class AuthError(AppException):
    """Raised when credentials or the session token are missing or invalid."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized"


class ForbiddenError(AppException):
    """Raised when the user is authenticated but may not perform the action."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action"


class SubscriptionRequiredError(AppException):
    """Raised when the acting doctor has no usable subscription."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "An active subscription is required"


class NotFoundError(AppException):
    """Raised when a resource does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ConflictError(AppException):
    """Raised when a resource already exists (e.g. duplicate email)."""
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class InvalidStateError(AppException):
    """Raised when a state transition is not allowed from the current state."""
    status_code = status.HTTP_409_CONFLICT
    default_message = "Operation not allowed in the current state"


class RateLimitError(AppException):
    """Raised when a client exceeds a route's request budget."""
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests, please try again later"


class InvalidCodeError(AppException):
    """Raised when a verification code or reset token does not match."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid verification code"


class ExpiredCodeError(AppException):
    """Raised when a verification code or reset token has expired."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Verification code has expired"


async def app_exception_handler(request: Request, exc: AppException):
    """
    Handler for application-specific exceptions.

    Args:
        request: The request that caused the exception
        exc: The exception instance

    Returns:
        JSONResponse: Standardized error response
    """
    logger.warning(f"Application error on {request.method} {request.url.path}: {exc.status_code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for request validation exceptions.

    Args:
        request: The request that caused the exception
        exc: The validation exception instance

    Returns:
        JSONResponse: Standardized error response with validation details
    """
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg"),
        }
        for error in exc.errors()
    ]
    logger.warning(f"Validation error on {request.method} {request.url.path}: {errors}")
    fields = ", ".join(error["field"] for error in errors if error["field"])
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=ValidationError(f"Invalid fields: {fields}" if fields else None, errors).to_content(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Handler for anything not covered above; logs the stack trace and hides internals.
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": AppException.default_message},
    )


# Register exception handlers with FastAPI app
def register_exception_handlers(app):
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
