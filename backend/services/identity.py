"""
Identity service: Google sign-in and token refresh.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.identity import GoogleAuthError, GoogleIdentityVerifier, GoogleProfile
from core.exceptions import BadRequestError, UnauthenticatedError
from core.security.tokens import TokenService
from infrastructure.database.models.base import utcnow
from infrastructure.database.models.user import User

logger = logging.getLogger(__name__)


class IdentityService:
    """
    Maps Google identities onto local users and issues API tokens.

    When no verifier is configured the posted profile is trusted as-is,
    which is only acceptable outside production.
    """

    def __init__(
        self,
        db: AsyncSession,
        token_service: TokenService,
        verifier: Optional[GoogleIdentityVerifier] = None,
    ):
        self.db = db
        self.tokens = token_service
        self.verifier = verifier

    async def resolve_profile(
        self,
        id_token: Optional[str],
        claimed: Optional[GoogleProfile] = None,
    ) -> GoogleProfile:
        """
        Raises:
            UnauthenticatedError: If the ID token is missing or fails verification
            BadRequestError: If no verifier is configured and no profile was posted
        """
        if self.verifier is not None:
            if not id_token:
                raise UnauthenticatedError("Google ID token is required")
            try:
                return await self.verifier.verify(id_token)
            except GoogleAuthError as e:
                raise UnauthenticatedError(str(e)) from e

        if claimed is None:
            raise BadRequestError("Google profile is required")
        return claimed

    async def find_or_create_user(self, profile: GoogleProfile) -> User:
        """
        Find the user for a Google profile, creating one on first sign-in.

        Lookup is by Google ID first, then by email; a match by email links
        the Google ID to the existing account. Name and avatar are refreshed
        on every sign-in.
        """
        result = await self.db.execute(select(User).where(User.google_id == profile.google_id))
        user = result.scalar_one_or_none()

        if user is None:
            result = await self.db.execute(select(User).where(User.email == profile.email.strip().lower()))
            user = result.scalar_one_or_none()
            if user is not None:
                logger.info("Linking Google account to existing user %s", user.id)
                user.google_id = profile.google_id
            else:
                user = User(email=profile.email, name=profile.name, google_id=profile.google_id)
                self.db.add(user)

        user.name = profile.name or user.name
        user.avatar_url = profile.picture
        user.last_login_at = utcnow()

        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def sign_in(
        self,
        id_token: Optional[str],
        claimed: Optional[GoogleProfile] = None,
    ) -> tuple[User, str, str]:
        """
        Sign a user in with Google.

        Returns:
            Tuple of (user, access_token, refresh_token)
        """
        profile = await self.resolve_profile(id_token, claimed)
        user = await self.find_or_create_user(profile)
        access_token, refresh_token = self.tokens.create_token_pair(user.id, user.email)
        logger.info("User %s signed in with Google", user.id)
        return user, access_token, refresh_token

    async def refresh_access_token(self, refresh_token: str) -> str:
        """
        Exchange a refresh token for a new access token.

        Raises:
            UnauthenticatedError: If the refresh token is invalid, expired,
                or its user no longer exists
        """
        payload = self.tokens.verify_refresh_token(refresh_token)
        if payload is None:
            raise UnauthenticatedError("Invalid or expired refresh token")

        result = await self.db.execute(select(User).where(User.id == payload.sub))
        user = result.scalar_one_or_none()
        if user is None:
            raise UnauthenticatedError("Invalid or expired refresh token")
        return self.tokens.create_access_token(user.id, user.email)
