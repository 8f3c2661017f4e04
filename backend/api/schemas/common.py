"""
Response envelope shared by every endpoint.
"""

from datetime import UTC, datetime
from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """``{"status": ..., "data": ..., "message": ...}`` envelope."""

    status: Literal["success", "fail", "error"] = "success"
    data: Optional[T] = None
    message: Optional[str] = None


class MessageData(BaseModel):
    """Empty payload for endpoints that only report a message."""

    pass


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
