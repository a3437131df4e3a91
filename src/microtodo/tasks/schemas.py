"""Pydantic schemas for tasks.

- TaskRequest: what you POST to create, or PUT to replace, a task
- TaskResponse: what the API returns

TaskRequest.user_id exists because older clients always send it. It is
ignored: the owner is the caller.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from microtodo.schemas import ApiModel
from microtodo.tasks.models import TaskStatus


class TaskRequest(ApiModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[TaskStatus] = None
    user_id: Optional[int] = Field(None, description="Ignored; the owner is the caller")


class TaskResponse(ApiModel):
    id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    user_id: int
    created_at: datetime
    updated_at: datetime
