"""
Feedback API schemas.
"""

from pydantic import BaseModel, Field


class FeedbackRequest(BaseModel):
    """User feedback forwarded to the team inbox."""

    subject: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=5000)
