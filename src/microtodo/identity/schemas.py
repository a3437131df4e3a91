"""Pydantic schemas for the identity service.

- LoginRequest / LoginResponse: POST /api/auth/login
- UserCreate / UserResponse: registration
- UserProfile, UpdateProfileRequest, ChangePasswordRequest: /api/users/me
- UserSummary: what the task service gets from the internal lookup
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from microtodo.schemas import ApiModel

USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class LoginRequest(ApiModel):
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)


class LoginResponse(ApiModel):
    token: str
    user_id: int
    username: str


class UserCreate(ApiModel):
    username: str = Field(..., min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)


class UserResponse(ApiModel):
    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UserProfile(ApiModel):
    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class UpdateProfileRequest(ApiModel):
    """Partial update: only non-None fields are applied."""
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)


class ChangePasswordRequest(ApiModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)


class Availability(ApiModel):
    available: bool


class UserSummary(ApiModel):
    id: int
    username: str
