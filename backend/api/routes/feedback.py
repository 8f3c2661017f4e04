"""
Feedback API route.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from adapters.email import ResendEmailService
from api.dependencies import CurrentUser, get_email_service
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.common import ApiResponse, MessageData
from api.schemas.feedback import FeedbackRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feedback", tags=["Feedback"])


@router.post("", response_model=ApiResponse[MessageData])
@limiter.limit(get_rate_limit("feedback"))
async def send_feedback(
    request: Request,
    data: FeedbackRequest,
    current_user: CurrentUser,
    email_service: Annotated[ResendEmailService, Depends(get_email_service)],
):
    """Forward feedback to the team inbox with reply-to set to the user."""
    await email_service.send_feedback_email(
        user_name=current_user.name,
        user_email=current_user.email,
        subject=data.subject,
        content=data.content,
    )
    logger.info("Feedback sent by user %s", current_user.id)
    return ApiResponse(message="Feedback sent successfully")
