"""
Authcore Password Service
Password hashing and password-reset token generation
"""

import asyncio
import hashlib
import hmac
import secrets
from typing import NamedTuple

import bcrypt

from authcore.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_BCRYPT_ROUNDS = 12
RESET_TOKEN_BYTES = 32


class ResetToken(NamedTuple):
    """Raw reset token for the user and its hash for storage"""

    token: str
    token_hash: str


class PasswordService:
    """
    Hashes and verifies passwords with bcrypt, and issues reset tokens.

    bcrypt runs in a worker thread so the event loop is not blocked while
    hashing.
    """

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS):
        self.rounds = rounds

    def _hash_sync(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    async def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        return await asyncio.to_thread(self._hash_sync, password)

    async def compare(self, password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash

        Args:
            password: Plain text password to verify
            hashed_password: Stored password hash

        Returns:
            True if password matches, False otherwise
        """
        try:
            return await asyncio.to_thread(
                bcrypt.checkpw,
                password.encode("utf-8"),
                hashed_password.encode("utf-8"),
            )
        except ValueError as e:
            # Malformed stored hash or over-long input
            logger.warning(f"Password verification failed: {e}")
            return False

    def generate_reset_token(self) -> ResetToken:
        """
        Create a password reset token

        Returns:
            (token, token_hash): the raw token is sent to the user, only the
            hash is ever stored
        """
        token = secrets.token_hex(RESET_TOKEN_BYTES)
        return ResetToken(token=token, token_hash=self.hash_token(token))

    @staticmethod
    def hash_token(token: str) -> str:
        """SHA-256 hex digest of a reset token"""
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    def verify_reset_token(self, token: str, token_hash: str) -> bool:
        """Constant-time comparison of a presented token against a stored hash"""
        return hmac.compare_digest(self.hash_token(token), token_hash)
