"""Pydantic schemas for API key registration and the session probe."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class APIKeyCreate(BaseModel):
    """Request schema for registering a user and receiving an API key."""

    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    name: Optional[str] = Field(None, max_length=100)


class APIKeyResponse(BaseModel):
    """Response schema after a new API key is generated.

    The api_key is shown exactly once. It is stored only as a hash in the
    database and cannot be retrieved again after this response.
    """

    api_key: str
    user_id: int
    message: str = "Store this key securely -- it cannot be retrieved again"


class SessionUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: Optional[str] = None
    role: str
    reputation: int
    report_count: int
    verified_report_count: int
    onboarding_completed: bool
    created_at: datetime


class SessionResponse(BaseModel):
    user: Optional[SessionUser] = None
