"""API Routes."""

from fastapi import APIRouter

from .auth import router as auth_router
from .feedback import router as feedback_router
from .health import router as health_router
from .invitations import router as invitations_router
from .projects import router as projects_router
from .subscription import router as subscription_router
from .tasks import router as tasks_router

# Create main API router
api_router = APIRouter()

# Include route modules
api_router.include_router(auth_router)
api_router.include_router(projects_router)
api_router.include_router(tasks_router)
api_router.include_router(invitations_router)
api_router.include_router(subscription_router)
api_router.include_router(feedback_router)

__all__ = ["api_router", "health_router"]
