"""Profile, badge and onboarding endpoints.

GET  /api/v1/profile/me           -- counters, badges and recent activity
GET  /api/v1/badges               -- every badge rule with the caller's earned state
POST /api/v1/onboarding/complete  -- mark onboarding finished
"""

from fastapi import APIRouter
from sqlalchemy import case, func, select, update

from groceryindex.dependencies import CurrentUser, DbSession
from groceryindex.middleware.rate_limiter import ReadRateLimit, WriteRateLimit
from groceryindex.models.badge import Badge, UserBadge
from groceryindex.models.item import Item
from groceryindex.models.market import Market
from groceryindex.models.price_report import PriceReport, ReportStatus
from groceryindex.models.reputation import ReputationEvent
from groceryindex.models.user import User
from groceryindex.models.vote import ReportVote
from groceryindex.schemas.auth import SessionUser
from groceryindex.schemas.common import DataResponse
from groceryindex.schemas.profile import (
    BadgeStatus,
    EarnedBadge,
    OnboardingResponse,
    ProfileResponse,
    ProfileStats,
    RecentActivity,
)
from groceryindex.services.reputation import BADGE_RULES

router = APIRouter(prefix="/api/v1", tags=["profile"])


@router.get("/profile/me", response_model=DataResponse[ProfileResponse])
async def get_my_profile(
    user: CurrentUser,
    db: DbSession,
    _rate: ReadRateLimit,
) -> DataResponse[ProfileResponse]:
    """Aggregate profile for the caller.

    Report totals are counted from price_reports rather than read from the
    denormalized user counters. reputation_delta on each recent report is the
    sum of the caller's reputation events linked to that report.
    """
    # Counters may have moved since authentication loaded the row
    await db.refresh(user)

    report_stats = (
        await db.execute(
            select(
                func.count().label("total_reports"),
                func.sum(
                    case((PriceReport.status == ReportStatus.verified.value, 1), else_=0)
                ).label("verified_reports"),
                func.count(func.distinct(PriceReport.market_id)).label("markets_covered"),
            )
            .select_from(PriceReport)
            .where(PriceReport.user_id == user.id)
        )
    ).one()

    badge_count = (
        await db.execute(
            select(func.count()).select_from(UserBadge).where(UserBadge.user_id == user.id)
        )
    ).scalar_one()

    helpful_received = (
        await db.execute(
            select(func.count())
            .select_from(ReportVote)
            .join(PriceReport, ReportVote.report_id == PriceReport.id)
            .where(PriceReport.user_id == user.id)
            .where(ReportVote.is_helpful.is_(True))
        )
    ).scalar_one()

    badge_rows = (
        await db.execute(
            select(Badge.id, Badge.name, Badge.description, UserBadge.awarded_at)
            .join(UserBadge, UserBadge.badge_id == Badge.id)
            .where(UserBadge.user_id == user.id)
            .order_by(UserBadge.awarded_at.desc(), UserBadge.id.desc())
            .limit(12)
        )
    ).all()

    helpful_per_report = (
        select(func.count())
        .select_from(ReportVote)
        .where(ReportVote.report_id == PriceReport.id)
        .where(ReportVote.is_helpful.is_(True))
        .correlate(PriceReport)
        .scalar_subquery()
    )
    reputation_per_report = (
        select(func.coalesce(func.sum(ReputationEvent.delta), 0))
        .where(ReputationEvent.report_id == PriceReport.id)
        .where(ReputationEvent.user_id == user.id)
        .correlate(PriceReport)
        .scalar_subquery()
    )
    activity_rows = (
        await db.execute(
            select(
                PriceReport.id.label("report_id"),
                Item.name.label("item_name"),
                Market.name.label("market_name"),
                PriceReport.status,
                PriceReport.price,
                PriceReport.currency,
                PriceReport.created_at,
                helpful_per_report.label("helpful_votes"),
                reputation_per_report.label("reputation_delta"),
            )
            .join(Item, Item.id == PriceReport.item_id)
            .join(Market, Market.id == PriceReport.market_id)
            .where(PriceReport.user_id == user.id)
            .order_by(PriceReport.created_at.desc(), PriceReport.id.desc())
            .limit(5)
        )
    ).all()

    return DataResponse(
        data=ProfileResponse(
            user=SessionUser.model_validate(user),
            stats=ProfileStats(
                total_reports=report_stats.total_reports or 0,
                verified_reports=report_stats.verified_reports or 0,
                badge_count=badge_count or 0,
                markets_covered=report_stats.markets_covered or 0,
                helpful_votes=helpful_received or 0,
            ),
            badges=[EarnedBadge(**row._mapping) for row in badge_rows],
            recent_activity=[RecentActivity(**row._mapping) for row in activity_rows],
        )
    )


@router.get("/badges", response_model=DataResponse[list[BadgeStatus]])
async def list_badges(
    user: CurrentUser,
    db: DbSession,
    _rate: ReadRateLimit,
) -> DataResponse[list[BadgeStatus]]:
    result = await db.execute(
        select(Badge.name, UserBadge.awarded_at)
        .join(UserBadge, UserBadge.badge_id == Badge.id)
        .where(UserBadge.user_id == user.id)
    )
    awarded = {name: awarded_at for name, awarded_at in result.all()}

    return DataResponse(
        data=[
            BadgeStatus(
                name=rule.name,
                description=rule.description,
                requirement=rule.requirement,
                earned=rule.name in awarded,
                awarded_at=awarded.get(rule.name),
            )
            for rule in BADGE_RULES
        ]
    )


@router.post("/onboarding/complete", response_model=DataResponse[OnboardingResponse])
async def complete_onboarding(
    user: CurrentUser,
    db: DbSession,
    _rate: WriteRateLimit,
) -> DataResponse[OnboardingResponse]:
    await db.execute(
        update(User)
        .where(User.id == user.id)
        .values(onboarding_completed=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return DataResponse(data=OnboardingResponse(onboarding_completed=True))
