"""
Task API schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from api.schemas.common import ensure_utc


class TaskCreate(BaseModel):
    """Schema for creating a task."""

    name: str = Field(..., max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    start_date: datetime
    end_date: datetime
    progress: int = Field(0, ge=0, le=100)
    color: Optional[str] = Field(None, max_length=32)
    assignee: Optional[str] = Field(None, max_length=255)
    dependencies: List[str] = Field(default_factory=list, description="IDs of tasks this task depends on")

    @field_validator("start_date", "end_date")
    @classmethod
    def dates_as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class TaskUpdate(BaseModel):
    """Partial task update. Sending ``dependencies`` replaces the full set."""

    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    progress: Optional[int] = Field(None, ge=0, le=100)
    color: Optional[str] = Field(None, max_length=32)
    assignee: Optional[str] = Field(None, max_length=255)
    dependencies: Optional[List[str]] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def dates_as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class TaskResponse(BaseModel):
    """Schema for task response."""

    id: str
    project_id: str
    name: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    progress: int
    color: Optional[str] = None
    assignee: Optional[str] = None
    dependencies: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("start_date", "end_date", "created_at", "updated_at")
    @classmethod
    def dates_as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @classmethod
    def from_task(cls, task, dependencies: List[str]) -> "TaskResponse":
        response = cls.model_validate(task)
        response.dependencies = list(dependencies)
        return response
