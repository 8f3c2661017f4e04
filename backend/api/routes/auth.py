"""
Authentication API routes.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from adapters.identity import GoogleProfile
from api.dependencies import CurrentUser, get_identity_service, get_token_service
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.auth import (
    AccessTokenResponse,
    AuthResponse,
    GoogleAuthRequest,
    RefreshTokenRequest,
    UserResponse,
)
from api.schemas.common import ApiResponse, MessageData
from core.security.tokens import TokenService
from services.identity import IdentityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _claimed_profile(body: GoogleAuthRequest) -> GoogleProfile | None:
    if not (body.google_id and body.email):
        return None
    return GoogleProfile(
        google_id=body.google_id,
        email=body.email,
        name=body.name or body.email.split("@")[0],
        picture=body.picture,
    )


@router.post("/google", response_model=ApiResponse[AuthResponse])
@limiter.limit(get_rate_limit("google_auth"))
async def google_auth(
    request: Request,
    body: GoogleAuthRequest,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
    token_service: Annotated[TokenService, Depends(get_token_service)],
):
    """Sign in with Google, creating the account on first use."""
    user, access_token, refresh_token = await identity.sign_in(body.id_token, _claimed_profile(body))
    return ApiResponse(
        data=AuthResponse(
            user=UserResponse.model_validate(user),
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=token_service.access_token_expire_seconds,
        )
    )


@router.post("/refresh", response_model=ApiResponse[AccessTokenResponse])
@limiter.limit(get_rate_limit("refresh"))
async def refresh_token(
    request: Request,
    body: RefreshTokenRequest,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
    token_service: Annotated[TokenService, Depends(get_token_service)],
):
    """Exchange a refresh token for a new access token."""
    access_token = await identity.refresh_access_token(body.refresh_token)
    return ApiResponse(
        data=AccessTokenResponse(
            access_token=access_token,
            expires_in=token_service.access_token_expire_seconds,
        )
    )


@router.post("/logout", response_model=ApiResponse[MessageData])
async def logout(current_user: CurrentUser):
    """
    Log out. Tokens are stateless; the client discards them.
    """
    logger.info("User %s logged out", current_user.id)
    return ApiResponse(message="Logged out successfully")


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_me(current_user: CurrentUser):
    """Get the current user's profile."""
    return ApiResponse(data=UserResponse.model_validate(current_user))
