"""
Service layer for business logic.
"""

from services.authorization import ProjectAuthorizationService
from services.identity import IdentityService
from services.invitations import InvitationService
from services.members import MemberService
from services.projects import ProjectService
from services.subscription import SubscriptionService
from services.tasks import TaskService

__all__ = [
    "IdentityService",
    "InvitationService",
    "MemberService",
    "ProjectAuthorizationService",
    "ProjectService",
    "SubscriptionService",
    "TaskService",
]
