"""
Authcore Authentication Models
Pydantic models for tokens, authentication requests and responses
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire"""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# ============================================================================
# FIELD TYPES
# ============================================================================


def _normalize(value: object) -> object:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _strip(value: object) -> object:
    if isinstance(value, str):
        return value.strip()
    return value


def _check_password_strength(value: str) -> str:
    if not re.search(r"[A-Z]", value):
        raise ValueError("Password must contain an upper-case letter")
    if not re.search(r"[a-z]", value):
        raise ValueError("Password must contain a lower-case letter")
    if not re.search(r"[0-9]", value):
        raise ValueError("Password must contain a digit")
    if not re.search(r"[^a-zA-Z0-9]", value):
        raise ValueError("Password must contain a special character")
    return value


NormalizedEmail = Annotated[EmailStr, BeforeValidator(_normalize)]

Username = Annotated[
    str,
    BeforeValidator(_normalize),
    Field(min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_]+$"),
]

# bcrypt only looks at the first 72 bytes
StrongPassword = Annotated[
    str,
    Field(min_length=8, max_length=72),
    AfterValidator(_check_password_strength),
]

DisplayName = Annotated[str, BeforeValidator(_strip), Field(min_length=2, max_length=100)]

NonEmptyStr = Annotated[str, Field(min_length=1)]


# ============================================================================
# TOKENS
# ============================================================================


class TokenType(str, Enum):
    """Distinguishes access from refresh JWTs"""

    ACCESS = "access"
    REFRESH = "refresh"


class DecodedToken(CamelModel):
    """JWT claims after verification"""

    user_id: UUID
    email: str
    username: str
    type: TokenType
    iat: int
    exp: int
    jti: Optional[str] = None


class TokenPair(CamelModel):
    """Access/refresh pair returned on register, login and refresh"""

    access_token: str
    refresh_token: str
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class TokenValidation(CamelModel):
    """Non-throwing result of access token validation"""

    valid: bool
    user_id: Optional[UUID] = None


@dataclass(frozen=True)
class ClientContext:
    """Device metadata captured when a refresh token is issued"""

    user_agent: Optional[str] = None
    ip_address: Optional[str] = None


@dataclass(frozen=True)
class CurrentUser:
    """Identity carried by a verified access token"""

    id: UUID
    email: str
    username: str


# ============================================================================
# REQUESTS
# ============================================================================


class RegisterRequest(CamelModel):
    """User registration request"""

    username: Username
    email: NormalizedEmail
    password: StrongPassword
    display_name: Optional[DisplayName] = None


class LoginRequest(CamelModel):
    """User login request"""

    email: NormalizedEmail
    password: NonEmptyStr


class RefreshTokenRequest(CamelModel):
    """Body for logout and refresh"""

    refresh_token: NonEmptyStr


class ForgotPasswordRequest(CamelModel):
    email: NormalizedEmail


class ResetPasswordRequest(CamelModel):
    token: NonEmptyStr
    new_password: StrongPassword


class ChangePasswordRequest(CamelModel):
    """Password change request"""

    current_password: NonEmptyStr
    new_password: StrongPassword
    keep_session_id: Optional[UUID] = Field(
        None, description="Session to keep signed in; all others are revoked"
    )


# ============================================================================
# RESPONSES
# ============================================================================


class UserResponse(CamelModel):
    """User details response (no sensitive data)"""

    id: UUID
    username: str
    email: str
    display_name: Optional[str] = None
    created_at: Optional[datetime] = None


class AuthResponse(CamelModel):
    """Result of register and login"""

    user: UserResponse
    tokens: TokenPair
    session_id: UUID


class RefreshResponse(CamelModel):
    """Result of a refresh token rotation"""

    tokens: TokenPair
    session_id: UUID


class SessionInfo(CamelModel):
    """One active refresh token, as shown to its owner"""

    id: UUID
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime


class SessionListResponse(CamelModel):
    sessions: List[SessionInfo]


class RevokeSessionsResponse(CamelModel):
    revoked_count: int
