"""
Authcore Errors
Base exception classes and response envelopes
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Stable machine-readable error codes"""

    BAD_REQUEST = "BAD_REQUEST"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    CONFLICT = "CONFLICT"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_PASSWORD = "INVALID_PASSWORD"
    SAME_PASSWORD = "SAME_PASSWORD"
    EMAIL_ALREADY_EXISTS = "EMAIL_ALREADY_EXISTS"
    USERNAME_ALREADY_EXISTS = "USERNAME_ALREADY_EXISTS"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


ErrorDetails = Union[Dict[str, Any], List[Dict[str, Any]]]


class AppException(Exception):
    """Base exception for the application"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[ErrorDetails] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self, request_id: Optional[str] = None) -> Dict[str, Any]:
        """Serialize into the error envelope"""
        return ErrorResponse(
            error=ErrorBody(
                code=self.error_code.value,
                message=self.message,
                status_code=self.status_code,
                details=self.details,
                timestamp=self.timestamp,
                request_id=request_id or "unknown",
            )
        ).model_dump(mode="json", by_alias=True, exclude_none=True)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.error_code.value}, {self.status_code}, {self.message!r})"


class InternalError(AppException):
    """Unexpected failure (500)"""

    def __init__(self, message: str = "An unexpected error occurred", details: Optional[ErrorDetails] = None):
        super().__init__(message, status_code=500, error_code=ErrorCode.INTERNAL_ERROR, details=details)


class ServiceUnavailableError(AppException):
    """Dependency unavailable (503)"""

    def __init__(self, service: str, details: Optional[ErrorDetails] = None):
        super().__init__(
            f"{service} is currently unavailable",
            status_code=503,
            error_code=ErrorCode.SERVICE_UNAVAILABLE,
            details=details,
        )


# ============================================================================
# RESPONSE ENVELOPES
# ============================================================================


class ErrorBody(BaseModel):
    """Error payload inside the envelope"""

    model_config = {"populate_by_name": True}

    code: str
    message: str
    status_code: int = Field(..., alias="statusCode")
    details: Optional[Any] = None
    timestamp: datetime
    request_id: str = Field(..., alias="requestId")


class ErrorResponse(BaseModel):
    """Uniform error response"""

    success: bool = False
    error: ErrorBody


class SuccessResponse(BaseModel):
    """Uniform success response"""

    success: bool = True
    message: Optional[str] = None
    data: Optional[Any] = None
