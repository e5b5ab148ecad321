"""
Authcore Authentication Exceptions
Typed failures raised by the auth core, each with a stable code and status
"""

from typing import Optional

from authcore.utils.errors import AppException, ErrorCode, ErrorDetails


class AuthException(AppException):
    """Base class for authentication failures (401 unless overridden)"""

    def __init__(
        self,
        message: str,
        status_code: int = 401,
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
        details: Optional[ErrorDetails] = None,
    ):
        super().__init__(message, status_code=status_code, error_code=error_code, details=details)


class ValidationException(AuthException):
    """Malformed request data (400)"""

    def __init__(self, message: str = "Invalid request data", details: Optional[ErrorDetails] = None):
        super().__init__(message, 400, ErrorCode.VALIDATION_ERROR, details)


class EmailAlreadyExistsError(AuthException):
    """Email collision on register (409)"""

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message, 409, ErrorCode.EMAIL_ALREADY_EXISTS)


class UsernameAlreadyExistsError(AuthException):
    """Username collision on register (409)"""

    def __init__(self, message: str = "Username already taken"):
        super().__init__(message, 409, ErrorCode.USERNAME_ALREADY_EXISTS)


class InvalidCredentialsError(AuthException):
    """Unknown email or wrong password; the two cases are indistinguishable"""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, 401, ErrorCode.INVALID_CREDENTIALS)


class InvalidTokenError(AuthException):
    """
    Token failed signature, expiry, type or persisted-state checks.

    `reason` says which check failed. It is meant for logs only and is
    never part of the serialized response.
    """

    INVALID = "invalid"
    EXPIRED = "expired"
    WRONG_TYPE = "wrong_type"
    NOT_FOUND = "not_found"
    REVOKED = "revoked"

    def __init__(self, message: str = "Invalid or expired token", reason: str = INVALID):
        super().__init__(message, 401, ErrorCode.INVALID_TOKEN)
        self.reason = reason


class InvalidPasswordError(AuthException):
    """Wrong current password on change-password (400)"""

    def __init__(self, message: str = "Current password is incorrect"):
        super().__init__(message, 400, ErrorCode.INVALID_PASSWORD)


class SamePasswordError(AuthException):
    """New password equals the current one (400)"""

    def __init__(self, message: str = "New password must be different from the current one"):
        super().__init__(message, 400, ErrorCode.SAME_PASSWORD)


class UnauthorizedError(AuthException):
    """No authenticated user where one is required"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, 401, ErrorCode.UNAUTHORIZED)


class UserNotFoundError(AuthException):
    """User row vanished between authentication and the operation (404)"""

    def __init__(self, message: str = "User not found"):
        super().__init__(message, 404, ErrorCode.USER_NOT_FOUND)
