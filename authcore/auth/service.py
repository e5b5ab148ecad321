"""
Authcore Authentication Service
Business logic for registration, login, token rotation, password recovery
and session management
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authcore.cache import CacheManager
from authcore.models.database import RefreshTokenDB, UserDB
from authcore.utils.logger import get_logger

from .events import AuthEvents, AuthEventType
from .exceptions import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidPasswordError,
    InvalidTokenError,
    SamePasswordError,
    UserNotFoundError,
    UsernameAlreadyExistsError,
)
from .models import (
    AuthResponse,
    ClientContext,
    LoginRequest,
    RefreshResponse,
    RegisterRequest,
    SessionInfo,
    TokenPair,
    TokenValidation,
    UserResponse,
)
from .passwords import PasswordService
from .repository import RefreshTokenRepository, UserRepository
from .tokens import TokenService

logger = get_logger(__name__)

DEFAULT_RESET_PREFIX = "password_reset:"
DEFAULT_RESET_TTL = 3600


class AuthService:
    """
    Authentication service handling the session/token lifecycle.

    One instance serves one database session. Each public operation that
    writes commits exactly once on success and rolls back on failure.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        tokens: TokenService,
        passwords: PasswordService,
        cache: CacheManager,
        events: Optional[AuthEvents] = None,
        reset_prefix: str = DEFAULT_RESET_PREFIX,
        reset_ttl: int = DEFAULT_RESET_TTL,
    ):
        self.db = db_session
        self.tokens = tokens
        self.passwords = passwords
        self.cache = cache
        self.events = events or AuthEvents()
        self.reset_prefix = reset_prefix
        self.reset_ttl = reset_ttl
        self.user_repo = UserRepository(db_session)
        self.refresh_repo = RefreshTokenRepository(db_session)

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[None]:
        try:
            yield
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Registration and login
    # ------------------------------------------------------------------

    async def register(
        self, data: RegisterRequest, context: Optional[ClientContext] = None
    ) -> AuthResponse:
        """
        Register a new user and open its first session

        Raises:
            EmailAlreadyExistsError: email already registered (checked first)
            UsernameAlreadyExistsError: username already taken
        """
        await self._ensure_unique(data.email, data.username)

        password_hash = await self.passwords.hash(data.password)

        try:
            async with self._unit_of_work():
                user = await self.user_repo.create(
                    username=data.username,
                    email=data.email,
                    password_hash=password_hash,
                    display_name=data.display_name,
                )
                tokens, session = await self._issue_tokens(user, context)
        except IntegrityError:
            # Lost a race with a concurrent registration
            await self._ensure_unique(data.email, data.username)
            raise

        logger.info(f"User registered: {user.email}")
        self.events.emit(AuthEventType.REGISTER, user_id=str(user.id), email=user.email)

        return AuthResponse(
            user=UserResponse.model_validate(user),
            tokens=tokens,
            session_id=session.id,
        )

    async def _ensure_unique(self, email: str, username: str) -> None:
        if await self.user_repo.find_by_email(email):
            raise EmailAlreadyExistsError()
        if await self.user_repo.find_by_username(username):
            raise UsernameAlreadyExistsError()

    async def login(
        self, credentials: LoginRequest, context: Optional[ClientContext] = None
    ) -> AuthResponse:
        """
        Authenticate with email and password

        Raises:
            InvalidCredentialsError: unknown email or wrong password, reported
                identically
        """
        user = await self.user_repo.find_by_email(credentials.email)

        if not user:
            logger.warning(f"Login attempt for non-existent email: {credentials.email}")
            self.events.emit(
                AuthEventType.LOGIN_FAILED, email=credentials.email, reason="user_not_found"
            )
            raise InvalidCredentialsError()

        if not await self.passwords.compare(credentials.password, user.password):
            logger.warning(f"Invalid password attempt for: {credentials.email}")
            self.events.emit(
                AuthEventType.LOGIN_FAILED, email=credentials.email, reason="invalid_password"
            )
            raise InvalidCredentialsError()

        async with self._unit_of_work():
            tokens, session = await self._issue_tokens(user, context)

        logger.info(f"User logged in: {user.email}")
        self.events.emit(AuthEventType.LOGIN, user_id=str(user.id), email=user.email)

        return AuthResponse(
            user=UserResponse.model_validate(user),
            tokens=tokens,
            session_id=session.id,
        )

    async def _issue_tokens(
        self, user: UserDB, context: Optional[ClientContext]
    ) -> Tuple[TokenPair, RefreshTokenDB]:
        context = context or ClientContext()
        tokens = self.tokens.generate_token_pair(user.id, user.email, user.username)
        session = await self.refresh_repo.create(
            user_id=user.id,
            token=tokens.refresh_token,
            expires_at=self.tokens.get_refresh_expiration(),
            user_agent=context.user_agent,
            ip_address=context.ip_address,
        )
        return tokens, session

    # ------------------------------------------------------------------
    # Logout and refresh
    # ------------------------------------------------------------------

    async def logout(self, refresh_token: str) -> None:
        """Revoke a refresh token; unknown or already revoked tokens are ignored"""
        async with self._unit_of_work():
            stored = await self.refresh_repo.find_by_token(refresh_token)
            revoked = await self.refresh_repo.revoke_by_token(refresh_token)

        if revoked and stored is not None:
            logger.info(f"Session {stored.id} logged out")
            self.events.emit(AuthEventType.LOGOUT, user_id=str(stored.user_id))

    async def refresh(
        self, refresh_token: str, context: Optional[ClientContext] = None
    ) -> RefreshResponse:
        """
        Rotate a refresh token: revoke it and issue a new pair

        The persisted row decides validity, so a revoked token fails even
        while its JWT signature and expiry still check out.

        Raises:
            InvalidTokenError: bad JWT, or row missing, revoked or expired
            UserNotFoundError: the owning user no longer exists
        """
        try:
            decoded = self.tokens.verify_refresh_token(refresh_token)
        except InvalidTokenError as e:
            logger.warning(f"Rejected refresh token ({e.reason})")
            raise InvalidTokenError() from e

        stored = await self.refresh_repo.find_by_token(refresh_token)
        if stored is None:
            logger.warning("Rejected refresh token (revoked or unknown)")
            raise InvalidTokenError(reason=InvalidTokenError.REVOKED)
        if not stored.is_valid() or stored.user_id != decoded.user_id:
            logger.warning(f"Rejected refresh token for session {stored.id}")
            raise InvalidTokenError(reason=InvalidTokenError.EXPIRED)

        user = await self.user_repo.find_by_id(stored.user_id)
        if user is None:
            async with self._unit_of_work():
                await self.refresh_repo.revoke(stored)
            raise UserNotFoundError()

        previous = ClientContext(user_agent=stored.user_agent, ip_address=stored.ip_address)
        context = context or ClientContext()
        carried = ClientContext(
            user_agent=previous.user_agent or context.user_agent,
            ip_address=previous.ip_address or context.ip_address,
        )

        async with self._unit_of_work():
            # Conditional revoke: a concurrent refresh of the same token loses here
            if not await self.refresh_repo.revoke_by_token(refresh_token):
                raise InvalidTokenError(reason=InvalidTokenError.REVOKED)
            tokens, session = await self._issue_tokens(user, carried)

        logger.info(f"Session {stored.id} rotated to {session.id}")
        self.events.emit(AuthEventType.TOKEN_REFRESH, user_id=str(user.id))

        return RefreshResponse(tokens=tokens, session_id=session.id)

    # ------------------------------------------------------------------
    # Password recovery and change
    # ------------------------------------------------------------------

    def _reset_key(self, token_hash: str) -> str:
        return f"{self.reset_prefix}{token_hash}"

    async def forgot_password(self, email: str) -> Optional[str]:
        """
        Start password recovery

        Returns:
            The raw reset token for out-of-band delivery, or None when no
            user has this email. Callers must answer both cases identically.
        """
        user = await self.user_repo.find_by_email(email)
        if not user:
            logger.info("Password reset requested for unknown email")
            return None

        reset = self.passwords.generate_reset_token()
        await self.cache.set(self._reset_key(reset.token_hash), str(user.id), self.reset_ttl)

        logger.info(f"Password reset requested for user {user.id}")
        self.events.emit(
            AuthEventType.PASSWORD_RESET_REQUEST, user_id=str(user.id), email=user.email
        )
        return reset.token

    async def reset_password(self, token: str, new_password: str) -> None:
        """
        Set a new password from a reset token and sign out every session

        Raises:
            InvalidTokenError: token unknown or expired
        """
        key = self._reset_key(self.passwords.hash_token(token))
        stored_user_id = await self.cache.get(key)
        if stored_user_id is None:
            raise InvalidTokenError(reason=InvalidTokenError.NOT_FOUND)

        user_id = UUID(stored_user_id)
        password_hash = await self.passwords.hash(new_password)

        async with self._unit_of_work():
            if not await self.user_repo.update_password(user_id, password_hash):
                raise InvalidTokenError(reason=InvalidTokenError.NOT_FOUND)
            revoked = await self.refresh_repo.revoke_all_for_user(user_id)

        await self.cache.delete(key)

        logger.info(f"Password reset for user {user_id}, {revoked} sessions revoked")
        self.events.emit(AuthEventType.PASSWORD_RESET, user_id=str(user_id))

    async def change_password(
        self,
        user_id: UUID,
        current_password: str,
        new_password: str,
        keep_session_id: Optional[UUID] = None,
    ) -> int:
        """
        Change password and revoke other sessions

        Args:
            keep_session_id: session left signed in; when None every session
                is revoked

        Returns:
            Number of sessions revoked

        Raises:
            UserNotFoundError: user vanished
            InvalidPasswordError: current password is wrong
            SamePasswordError: new password equals the current one
        """
        user = await self.user_repo.find_by_id(user_id)
        if not user:
            raise UserNotFoundError()

        if not await self.passwords.compare(current_password, user.password):
            raise InvalidPasswordError()

        if await self.passwords.compare(new_password, user.password):
            raise SamePasswordError()

        password_hash = await self.passwords.hash(new_password)

        async with self._unit_of_work():
            await self.user_repo.update_password(user_id, password_hash)
            revoked = await self._revoke_sessions(user_id, keep_session_id)

        logger.info(f"Password changed for user {user_id}, {revoked} sessions revoked")
        self.events.emit(AuthEventType.PASSWORD_CHANGE, user_id=str(user_id))
        return revoked

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def get_active_sessions(self, user_id: UUID) -> List[SessionInfo]:
        """Unrevoked, unexpired refresh tokens of a user"""
        rows = await self.refresh_repo.find_active_by_user_id(user_id)
        return [SessionInfo.model_validate(row) for row in rows if row.is_valid()]

    async def revoke_all_sessions(
        self, user_id: UUID, keep_session_id: Optional[UUID] = None
    ) -> int:
        """Revoke every session of a user, optionally sparing one"""
        async with self._unit_of_work():
            revoked = await self._revoke_sessions(user_id, keep_session_id)

        logger.info(f"Revoked {revoked} sessions for user {user_id}")
        self.events.emit(AuthEventType.SESSIONS_REVOKED, user_id=str(user_id), count=revoked)
        return revoked

    async def _revoke_sessions(self, user_id: UUID, keep_session_id: Optional[UUID]) -> int:
        if keep_session_id is not None:
            return await self.refresh_repo.revoke_all_except(user_id, keep_session_id)
        return await self.refresh_repo.revoke_all_for_user(user_id)

    async def purge_expired_sessions(self) -> int:
        """Delete expired refresh tokens; meant for a periodic job"""
        async with self._unit_of_work():
            return await self.refresh_repo.delete_expired()

    # ------------------------------------------------------------------
    # Access tokens
    # ------------------------------------------------------------------

    def validate_access_token(self, token: str) -> TokenValidation:
        """Verify an access token without raising"""
        try:
            decoded = self.tokens.verify_access_token(token)
        except InvalidTokenError as e:
            logger.debug(f"Access token rejected ({e.reason})")
            return TokenValidation(valid=False)
        return TokenValidation(valid=True, user_id=decoded.user_id)

    async def get_current_user(self, user_id: UUID) -> UserResponse:
        """
        Load the authenticated user's profile

        Raises:
            UserNotFoundError: user vanished after the token was issued
        """
        user = await self.user_repo.find_by_id(user_id)
        if not user:
            raise UserNotFoundError()
        return UserResponse.model_validate(user)
