"""
Authcore Authentication Dependencies
FastAPI dependency injection for authentication
"""

import ipaddress
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from authcore.container import AuthContainer
from authcore.utils.logger import get_logger

from .exceptions import InvalidTokenError, UnauthorizedError
from .models import ClientContext, CurrentUser
from .service import AuthService
from .tokens import TokenService

logger = get_logger(__name__)

# Column widths of refresh_tokens.user_agent and refresh_tokens.ip_address
USER_AGENT_MAX_LENGTH = 500
IP_ADDRESS_MAX_LENGTH = 45


def get_container(request: Request) -> AuthContainer:
    """The container attached to the app by create_app()"""
    return request.app.state.container


async def get_db_session(
    container: AuthContainer = Depends(get_container),
) -> AsyncGenerator[AsyncSession, None]:
    """One database session per request"""
    async with container.database.session() as session:
        yield session


async def get_auth_service(
    db: AsyncSession = Depends(get_db_session),
    container: AuthContainer = Depends(get_container),
) -> AuthService:
    settings = container.settings
    return AuthService(
        db,
        tokens=container.tokens,
        passwords=container.passwords,
        cache=container.cache,
        events=container.events,
        reset_prefix=settings.password_reset_prefix,
        reset_ttl=settings.password_reset_ttl,
    )


def get_client_context(request: Request) -> ClientContext:
    """
    Device metadata for a newly issued session

    The IP is the first X-Forwarded-For hop when behind a proxy, else the
    peer address. Values that are not an IP address are dropped, and the
    user agent is cut to fit its column.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        candidate: Optional[str] = forwarded_for.split(",")[0].strip()
    else:
        candidate = request.client.host if request.client else None

    user_agent = request.headers.get("user-agent")
    return ClientContext(
        user_agent=user_agent[:USER_AGENT_MAX_LENGTH] if user_agent else None,
        ip_address=_normalize_ip(candidate),
    )


def _normalize_ip(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value))
    except ValueError:
        logger.warning(f"Ignoring malformed client address: {value[:IP_ADDRESS_MAX_LENGTH]!r}")
        return None


async def get_current_user(
    authorization: Optional[str] = Header(None),
    auth_service: AuthService = Depends(get_auth_service),
) -> CurrentUser:
    """
    FastAPI dependency to get current authenticated user from JWT token

    Usage:
    ```python
    @router.get("/protected")
    async def protected_endpoint(current_user: CurrentUser = Depends(get_current_user)):
        return {"user_id": current_user.id}
    ```

    Raises:
        UnauthorizedError: no Authorization header
        InvalidTokenError: not a Bearer token, or the token fails verification
    """
    if not authorization:
        raise UnauthorizedError()

    token = TokenService.extract_from_header(authorization)
    if token is None:
        raise InvalidTokenError(reason=InvalidTokenError.INVALID)

    try:
        decoded = auth_service.tokens.verify_access_token(token)
    except InvalidTokenError as e:
        logger.debug(f"Access token rejected ({e.reason})")
        raise InvalidTokenError() from e

    return CurrentUser(id=decoded.user_id, email=decoded.email, username=decoded.username)
