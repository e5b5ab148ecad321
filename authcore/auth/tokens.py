"""
Authcore Token Service
JWT signing and verification for access and refresh tokens
"""

import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import jwt
from pydantic import ValidationError as PydanticValidationError

from authcore.utils.config import Settings
from authcore.utils.logger import get_logger

from .exceptions import InvalidTokenError
from .models import DecodedToken, TokenPair, TokenType

logger = get_logger(__name__)

DEFAULT_EXPIRATION_SECONDS = 900

_EXPIRATION_PATTERN = re.compile(r"^(\d+)([smhd])$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

BEARER_PREFIX = "Bearer "


def parse_expiration(expression: str) -> int:
    """
    Convert an expiration expression to seconds

    Args:
        expression: e.g. "30s", "15m", "12h", "7d"

    Returns:
        Lifetime in seconds; DEFAULT_EXPIRATION_SECONDS if unparseable
    """
    match = _EXPIRATION_PATTERN.match(expression.strip()) if expression else None
    if match is None:
        logger.warning(f"Unparseable token expiration {expression!r}, using default")
        return DEFAULT_EXPIRATION_SECONDS
    value, unit = match.groups()
    return int(value) * _UNIT_SECONDS[unit]


class TokenService:
    """
    Signs and verifies access/refresh JWTs.

    Access and refresh tokens use distinct secrets and lifetimes, and the
    `type` claim is checked on verification so one kind can never stand in
    for the other.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_expires: str = "15m",
        refresh_expires: str = "7d",
        algorithm: str = "HS256",
    ):
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_expires_in = parse_expiration(access_expires)
        self.refresh_expires_in = parse_expiration(refresh_expires)
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            access_secret=settings.jwt_access_secret,
            refresh_secret=settings.jwt_refresh_secret,
            access_expires=settings.jwt_access_expires,
            refresh_expires=settings.jwt_refresh_expires,
            algorithm=settings.jwt_algorithm,
        )

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def _sign(
        self,
        user_id: UUID,
        email: str,
        username: str,
        token_type: TokenType,
        secret: str,
        lifetime_seconds: int,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "userId": str(user_id),
            "email": email,
            "username": username,
            "type": token_type.value,
            "iat": now,
            "exp": now + timedelta(seconds=lifetime_seconds),
            # Keeps tokens issued within the same second distinct
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def generate_access_token(self, user_id: UUID, email: str, username: str) -> str:
        """Create a short-lived access token"""
        return self._sign(
            user_id, email, username, TokenType.ACCESS, self.access_secret, self.access_expires_in
        )

    def generate_refresh_token(self, user_id: UUID, email: str, username: str) -> str:
        """Create a long-lived refresh token"""
        return self._sign(
            user_id, email, username, TokenType.REFRESH, self.refresh_secret, self.refresh_expires_in
        )

    def generate_token_pair(self, user_id: UUID, email: str, username: str) -> TokenPair:
        """Issue both tokens; expires_in is the access token lifetime"""
        return TokenPair(
            access_token=self.generate_access_token(user_id, email, username),
            refresh_token=self.generate_refresh_token(user_id, email, username),
            expires_in=self.access_expires_in,
        )

    def get_refresh_expiration(self) -> datetime:
        """Absolute expiry for a refresh token issued now"""
        return datetime.now(timezone.utc) + timedelta(seconds=self.refresh_expires_in)

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def _verify(self, token: str, secret: str, expected_type: TokenType) -> DecodedToken:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token has expired", reason=InvalidTokenError.EXPIRED)
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}", reason=InvalidTokenError.INVALID)

        if payload.get("type") != expected_type.value:
            raise InvalidTokenError("Invalid token type", reason=InvalidTokenError.WRONG_TYPE)

        try:
            return DecodedToken.model_validate(payload)
        except PydanticValidationError:
            raise InvalidTokenError("Invalid token payload", reason=InvalidTokenError.INVALID)

    def verify_access_token(self, token: str) -> DecodedToken:
        """
        Verify an access token

        Raises:
            InvalidTokenError: bad signature, expired, or not an access token
        """
        return self._verify(token, self.access_secret, TokenType.ACCESS)

    def verify_refresh_token(self, token: str) -> DecodedToken:
        """
        Verify a refresh token

        Raises:
            InvalidTokenError: bad signature, expired, or not a refresh token
        """
        return self._verify(token, self.refresh_secret, TokenType.REFRESH)

    def decode_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Decode without verifying the signature; None if malformed"""
        try:
            return jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            return None

    @staticmethod
    def extract_from_header(header: Optional[str]) -> Optional[str]:
        """Return the token from an `Authorization: Bearer <token>` header"""
        if not header or not header.startswith(BEARER_PREFIX):
            return None
        token = header[len(BEARER_PREFIX):].strip()
        return token or None
