"""Pydantic schemas for the profile, badge and onboarding read endpoints.

ProfileResponse is the top-level response for GET /api/v1/profile/me.
BadgeStatus is one row of GET /api/v1/badges.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from groceryindex.schemas.auth import SessionUser
from groceryindex.schemas.common import Money


class ProfileStats(BaseModel):
    total_reports: int
    verified_reports: int
    badge_count: int
    markets_covered: int
    helpful_votes: int


class EarnedBadge(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    awarded_at: datetime


class RecentActivity(BaseModel):
    report_id: int
    item_name: str
    market_name: str
    status: str
    price: Money
    currency: str
    created_at: datetime
    helpful_votes: int
    reputation_delta: int


class ProfileResponse(BaseModel):
    user: SessionUser
    stats: ProfileStats
    badges: list[EarnedBadge]
    recent_activity: list[RecentActivity]


class BadgeStatus(BaseModel):
    name: str
    description: str
    requirement: str
    earned: bool
    awarded_at: Optional[datetime] = None


class OnboardingResponse(BaseModel):
    onboarding_completed: bool
