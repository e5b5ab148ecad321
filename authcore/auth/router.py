"""
Authcore Authentication API Router
Endpoints for registration, login, token rotation, password recovery and sessions
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from authcore.utils.errors import SuccessResponse
from authcore.utils.logger import get_logger

from .dependencies import get_auth_service, get_client_context, get_current_user
from .models import (
    ChangePasswordRequest,
    ClientContext,
    CurrentUser,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    RevokeSessionsResponse,
    SessionListResponse,
)
from .service import AuthService

logger = get_logger(__name__)

FORGOT_PASSWORD_MESSAGE = "If the email is registered, a password reset link has been sent"


def create_auth_router() -> APIRouter:
    """
    Factory function to create the auth router

    Collaborators are resolved per request from the app's AuthContainer.

    Returns:
        Configured APIRouter with auth endpoints
    """

    auth_router = APIRouter(prefix="/auth", tags=["authentication"])

    @auth_router.post(
        "/register",
        response_model=SuccessResponse,
        response_model_exclude_none=True,
        status_code=status.HTTP_201_CREATED,
        summary="Register new user",
        description="Create a new user account and open its first session",
    )
    async def register(
        data: RegisterRequest,
        context: ClientContext = Depends(get_client_context),
        auth_service: AuthService = Depends(get_auth_service),
    ) -> SuccessResponse:
        result = await auth_service.register(data, context)
        return SuccessResponse(
            message="Registration successful",
            data=result.model_dump(mode="json", by_alias=True),
        )

    @auth_router.post(
        "/login",
        response_model=SuccessResponse,
        response_model_exclude_none=True,
        summary="User login",
        description="Authenticate with email and password, return a token pair",
    )
    async def login(
        credentials: LoginRequest,
        context: ClientContext = Depends(get_client_context),
        auth_service: AuthService = Depends(get_auth_service),
    ) -> SuccessResponse:
        result = await auth_service.login(credentials, context)
        return SuccessResponse(
            message="Login successful",
            data=result.model_dump(mode="json", by_alias=True),
        )

    @auth_router.post(
        "/logout",
        response_model=SuccessResponse,
        response_model_exclude_none=True,
        summary="Logout",
        description="Revoke a refresh token; unknown tokens are accepted silently",
    )
    async def logout(
        body: RefreshTokenRequest,
        auth_service: AuthService = Depends(get_auth_service),
    ) -> SuccessResponse:
        await auth_service.logout(body.refresh_token)
        return SuccessResponse(message="Logged out successfully")

    @auth_router.post(
        "/refresh",
        response_model=SuccessResponse,
        response_model_exclude_none=True,
        summary="Refresh tokens",
        description="Exchange a refresh token for a new pair; the old one is revoked",
    )
    async def refresh(
        body: RefreshTokenRequest,
        context: ClientContext = Depends(get_client_context),
        auth_service: AuthService = Depends(get_auth_service),
    ) -> SuccessResponse:
        result = await auth_service.refresh(body.refresh_token, context)
        return SuccessResponse(data=result.model_dump(mode="json", by_alias=True))

    @auth_router.post(
        "/forgot-password",
        response_model=SuccessResponse,
        response_model_exclude_none=True,
        summary="Request password reset",
    )
    async def forgot_password(
        body: ForgotPasswordRequest,
        auth_service: AuthService = Depends(get_auth_service),
    ) -> SuccessResponse:
        """Same answer whether or not the email is registered"""
        await auth_service.forgot_password(body.email)
        return SuccessResponse(message=FORGOT_PASSWORD_MESSAGE)

    @auth_router.post(
        "/reset-password",
        response_model=SuccessResponse,
        response_model_exclude_none=True,
        summary="Reset password",
        description="Set a new password with a reset token; signs out every session",
    )
    async def reset_password(
        body: ResetPasswordRequest,
        auth_service: AuthService = Depends(get_auth_service),
    ) -> SuccessResponse:
        await auth_service.reset_password(body.token, body.new_password)
        return SuccessResponse(message="Password reset successful")

    @auth_router.post(
        "/change-password",
        response_model=SuccessResponse,
        response_model_exclude_none=True,
        summary="Change password",
        description="Change password and revoke all sessions except keepSessionId",
    )
    async def change_password(
        body: ChangePasswordRequest,
        current_user: CurrentUser = Depends(get_current_user),
        auth_service: AuthService = Depends(get_auth_service),
    ) -> SuccessResponse:
        await auth_service.change_password(
            current_user.id,
            body.current_password,
            body.new_password,
            keep_session_id=body.keep_session_id,
        )
        return SuccessResponse(message="Password changed successfully")

    @auth_router.get(
        "/me",
        response_model=SuccessResponse,
        response_model_exclude_none=True,
        summary="Get current user",
    )
    async def get_me(
        current_user: CurrentUser = Depends(get_current_user),
        auth_service: AuthService = Depends(get_auth_service),
    ) -> SuccessResponse:
        user = await auth_service.get_current_user(current_user.id)
        return SuccessResponse(data=user.model_dump(mode="json", by_alias=True))

    @auth_router.get(
        "/sessions",
        response_model=SuccessResponse,
        response_model_exclude_none=True,
        summary="List active sessions",
    )
    async def list_sessions(
        current_user: CurrentUser = Depends(get_current_user),
        auth_service: AuthService = Depends(get_auth_service),
    ) -> SuccessResponse:
        sessions = await auth_service.get_active_sessions(current_user.id)
        result = SessionListResponse(sessions=sessions)
        return SuccessResponse(data=result.model_dump(mode="json", by_alias=True))

    @auth_router.delete(
        "/sessions",
        response_model=SuccessResponse,
        response_model_exclude_none=True,
        summary="Revoke sessions",
        description="Revoke every session of the current user, optionally keeping one",
    )
    async def revoke_sessions(
        keep_session_id: Optional[UUID] = Query(None, alias="keepSessionId"),
        current_user: CurrentUser = Depends(get_current_user),
        auth_service: AuthService = Depends(get_auth_service),
    ) -> SuccessResponse:
        revoked = await auth_service.revoke_all_sessions(current_user.id, keep_session_id)
        result = RevokeSessionsResponse(revoked_count=revoked)
        return SuccessResponse(data=result.model_dump(mode="json", by_alias=True))

    return auth_router
