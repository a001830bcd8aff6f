"""
Authentication and authorization errors.

Every failure raised by the authentication dependency and the permission
gates is an ``AuthError`` carrying one of a small set of kinds. The
registered exception handler renders them as the standard JSON error body.

Usage:
    from rbac.errors import AuthError

    raise AuthError.forbidden("Insufficient permissions")
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .cookies import clear_auth_cookies

logger = logging.getLogger(__name__)


# =============================================================================
# ERROR CODES
# =============================================================================


class AuthErrorCode(str, Enum):
    """Kinds of authentication/authorization failure."""

    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    FORBIDDEN = "FORBIDDEN"
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"


ERROR_CODE_STATUS_MAP: Dict[AuthErrorCode, int] = {
    AuthErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.TOKEN_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.SESSION_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    AuthErrorCode.BAD_REQUEST: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AuthErrorCode.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

DEFAULT_MESSAGES: Dict[AuthErrorCode, str] = {
    AuthErrorCode.UNAUTHORIZED: "Unauthorized",
    AuthErrorCode.INVALID_TOKEN: "Invalid token",
    AuthErrorCode.TOKEN_EXPIRED: "Token expired",
    AuthErrorCode.SESSION_EXPIRED: "Session expired",
    AuthErrorCode.FORBIDDEN: "Forbidden",
    AuthErrorCode.BAD_REQUEST: "Bad request",
    AuthErrorCode.NOT_FOUND: "Not found",
    AuthErrorCode.INTERNAL: "Internal server error",
}


# =============================================================================
# ERROR RESPONSE MODEL
# =============================================================================


class ErrorResponse(BaseModel):
    """Standardized API error response."""
    error: bool = Field(default=True, description="Always true for errors")
    code: str = Field(..., description="Error code from AuthErrorCode")
    message: str = Field(..., description="Human-readable error message")
    status_code: int = Field(..., description="HTTP status code")
    timestamp: str = Field(..., description="ISO 8601 timestamp")
    request_id: str = Field(..., description="Unique request identifier for tracking")
    path: Optional[str] = Field(None, description="Request path that caused the error")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")


# =============================================================================
# EXCEPTIONS
# =============================================================================


class AuthError(Exception):
    """
    Authentication/authorization failure.

    Args:
        code: Failure kind
        message: Human-readable message (defaults per kind)
        details: Optional extra context for the response body
        clear_credentials: Expire credential cookies on the error response
    """

    def __init__(
        self,
        code: AuthErrorCode,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        clear_credentials: bool = False,
    ):
        self.code = code
        self.message = message or DEFAULT_MESSAGES[code]
        self.status_code = ERROR_CODE_STATUS_MAP[code]
        self.details = details
        self.clear_credentials = clear_credentials
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.value}, {self.message!r})"

    @classmethod
    def unauthorized(cls, message: Optional[str] = None) -> "AuthError":
        return cls(AuthErrorCode.UNAUTHORIZED, message)

    @classmethod
    def invalid_token(cls, message: Optional[str] = None) -> "AuthError":
        return cls(AuthErrorCode.INVALID_TOKEN, message)

    @classmethod
    def token_expired(cls, message: Optional[str] = None) -> "AuthError":
        return cls(AuthErrorCode.TOKEN_EXPIRED, message)

    @classmethod
    def session_expired(cls, message: Optional[str] = None) -> "AuthError":
        return cls(AuthErrorCode.SESSION_EXPIRED, message)

    @classmethod
    def forbidden(cls, message: Optional[str] = None, clear_credentials: bool = False) -> "AuthError":
        return cls(AuthErrorCode.FORBIDDEN, message, clear_credentials=clear_credentials)

    @classmethod
    def bad_request(cls, message: Optional[str] = None) -> "AuthError":
        return cls(AuthErrorCode.BAD_REQUEST, message)

    @classmethod
    def not_found(cls, message: Optional[str] = None) -> "AuthError":
        return cls(AuthErrorCode.NOT_FOUND, message)

    @classmethod
    def internal(cls, message: Optional[str] = None) -> "AuthError":
        return cls(AuthErrorCode.INTERNAL, message)

    def to_response(self, request_id: str, path: Optional[str] = None) -> ErrorResponse:
        """Convert to the standard error body."""
        return ErrorResponse(
            code=self.code.value,
            message=self.message,
            status_code=self.status_code,
            timestamp=datetime.now(timezone.utc).isoformat(),
            request_id=request_id,
            path=path,
            details=self.details,
        )


class PermissionScopeError(AuthError):
    """A gate was constructed with a permission key of the wrong scope.

    Raised when the route is declared, not while serving a request.
    """

    def __init__(self, message: str):
        super().__init__(AuthErrorCode.BAD_REQUEST, message)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================


def get_request_id(request: Request) -> str:
    """Get the request ID from the header or request state, else generate one."""
    request_id = request.headers.get("X-Request-ID")
    if not request_id:
        request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = str(uuid.uuid4())
    return request_id


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the auth error handler with the FastAPI app.

    Call this in your app initialization:
        from rbac.errors import register_exception_handlers
        register_exception_handlers(app)
    """
    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
        """Handle AuthError exceptions."""
        request_id = get_request_id(request)

        log_level = logging.WARNING if exc.status_code < 500 else logging.ERROR
        logger.log(
            log_level,
            f"[{request_id}] AuthError: {exc.code.value} - {exc.message}",
            extra={
                "request_id": request_id,
                "error_code": exc.code.value,
                "status_code": exc.status_code,
                "path": request.url.path,
                "method": request.method,
            }
        )

        body = exc.to_response(request_id, request.url.path)
        response = JSONResponse(
            status_code=exc.status_code,
            content=body.model_dump(),
            headers={"X-Request-ID": request_id},
        )
        if exc.clear_credentials:
            clear_auth_cookies(response)
        return response
