"""
Authcore Authentication Module
JWT session management with refresh token rotation
"""

from .events import AuthEvents, AuthEventType
from .exceptions import (
    AuthException,
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidPasswordError,
    InvalidTokenError,
    SamePasswordError,
    UnauthorizedError,
    UserNotFoundError,
    UsernameAlreadyExistsError,
    ValidationException,
)
from .models import (
    AuthResponse,
    ClientContext,
    CurrentUser,
    DecodedToken,
    RefreshResponse,
    SessionInfo,
    TokenPair,
    TokenType,
    TokenValidation,
    UserResponse,
)
from .passwords import PasswordService
from .repository import RefreshTokenRepository, UserRepository
from .service import AuthService
from .tokens import TokenService, parse_expiration

__all__ = [
    # Service
    "AuthService",
    "TokenService",
    "PasswordService",
    "parse_expiration",
    # Repositories
    "UserRepository",
    "RefreshTokenRepository",
    # Events
    "AuthEvents",
    "AuthEventType",
    # Models
    "AuthResponse",
    "ClientContext",
    "CurrentUser",
    "DecodedToken",
    "RefreshResponse",
    "SessionInfo",
    "TokenPair",
    "TokenType",
    "TokenValidation",
    "UserResponse",
    # Exceptions
    "AuthException",
    "ValidationException",
    "EmailAlreadyExistsError",
    "UsernameAlreadyExistsError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "InvalidPasswordError",
    "SamePasswordError",
    "UnauthorizedError",
    "UserNotFoundError",
]
