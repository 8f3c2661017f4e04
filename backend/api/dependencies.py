"""
API dependencies for authentication and service wiring.
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.email import ResendEmailService
from adapters.identity import GoogleIdentityVerifier
from core.exceptions import UnauthenticatedError
from core.security.tokens import TokenService
from infrastructure.config.settings import Settings, get_settings
from infrastructure.database.connection import get_db
from infrastructure.database.models.user import User
from services.identity import IdentityService
from services.invitations import InvitationService
from services.members import MemberService
from services.projects import ProjectService
from services.subscription import SubscriptionService
from services.tasks import TaskService

DbSession = Annotated[AsyncSession, Depends(get_db)]


@lru_cache
def get_token_service() -> TokenService:
    return TokenService.from_settings(get_settings())


@lru_cache
def get_email_service() -> ResendEmailService:
    return ResendEmailService(get_settings())


def get_google_verifier(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Optional[GoogleIdentityVerifier]:
    """Verifier for Google ID tokens, or None when no client id is configured."""
    if not settings.google_client_id:
        return None
    return GoogleIdentityVerifier(settings.google_client_id)


async def get_current_user(
    db: DbSession,
    token_service: Annotated[TokenService, Depends(get_token_service)],
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """
    Dependency to get the current authenticated user from a Bearer token.
    """
    token = None
    if authorization and authorization.startswith("Bearer "):
        parts = authorization.split(" ", 1)
        token = parts[1].strip() if len(parts) > 1 else None

    if not token:
        raise UnauthenticatedError("Not authenticated")

    payload = token_service.verify_access_token(token)
    if not payload:
        raise UnauthenticatedError("Invalid or expired token")

    result = await db.execute(select(User).where(User.id == payload.sub))
    user = result.scalar_one_or_none()
    if not user:
        raise UnauthenticatedError("User not found")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_identity_service(
    db: DbSession,
    token_service: Annotated[TokenService, Depends(get_token_service)],
    verifier: Annotated[Optional[GoogleIdentityVerifier], Depends(get_google_verifier)],
) -> IdentityService:
    return IdentityService(db, token_service, verifier)


def get_project_service(db: DbSession) -> ProjectService:
    return ProjectService(db)


def get_task_service(db: DbSession) -> TaskService:
    return TaskService(db)


def get_member_service(db: DbSession) -> MemberService:
    return MemberService(db)


def get_subscription_service(db: DbSession) -> SubscriptionService:
    return SubscriptionService(db)


def get_invitation_service(
    db: DbSession,
    email_service: Annotated[ResendEmailService, Depends(get_email_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> InvitationService:
    return InvitationService(db, email_service, expire_days=settings.invitation_expire_days)
