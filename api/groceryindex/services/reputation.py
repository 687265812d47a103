"""Reputation point awards and badge unlocks.

award_reputation appends one row to the user_reputation_events audit log and
bumps users.reputation by the same delta. check_and_award_badges evaluates
the fixed BADGE_RULES against the user's persisted counters and grants any
badge not yet earned.

Design notes:
- Neither function commits. Callers run them inside the request transaction
  together with the lifecycle change that triggered them, so a failure rolls
  back the status change, the audit row and the counter together.
- The reputation increment is a column expression (reputation + delta), never
  a Python-side read-modify-write.
- Badge grants are idempotent: the earned set is re-read from user_badges on
  every call and the user_badges insert is ON CONFLICT DO NOTHING, so
  concurrent checks for the same user cannot produce a duplicate row.
- Badge definitions are created lazily by name the first time anyone unlocks
  them.
"""

from dataclasses import dataclass
from typing import Callable, Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from groceryindex.config import settings
from groceryindex.database import insert_for
from groceryindex.metrics import badges_awarded, reputation_events
from groceryindex.models.badge import Badge, UserBadge
from groceryindex.models.price_report import PriceReport
from groceryindex.models.reputation import ReputationEvent
from groceryindex.models.user import User
from groceryindex.models.vote import ReportVote
from groceryindex.services.notifications import (
    notify_badge_earned,
    notify_reputation_milestone,
)

log = structlog.get_logger()


@dataclass(frozen=True)
class UserStats:
    report_count: int
    verified_report_count: int
    helpful_votes_received: int


@dataclass(frozen=True)
class BadgeRule:
    name: str
    description: str
    requirement: str
    check: Callable[[UserStats], bool]


# Evaluated in this order on every check
BADGE_RULES: tuple[BadgeRule, ...] = (
    BadgeRule(
        name="First Reporter",
        description="Submitted your first price report",
        requirement="Submit 1 report",
        check=lambda s: s.report_count >= 1,
    ),
    BadgeRule(
        name="Trend Setter",
        description="Submitted 10+ price reports",
        requirement="Submit 10 reports",
        check=lambda s: s.report_count >= 10,
    ),
    BadgeRule(
        name="Veteran Reporter",
        description="Submitted 50+ price reports",
        requirement="Submit 50 reports",
        check=lambda s: s.report_count >= 50,
    ),
    BadgeRule(
        name="Accuracy Star",
        description="10+ verified reports",
        requirement="Get 10 reports verified",
        check=lambda s: s.verified_report_count >= 10,
    ),
    BadgeRule(
        name="Community Helper",
        description="Received 20+ helpful votes",
        requirement="Receive 20 helpful votes",
        check=lambda s: s.helpful_votes_received >= 20,
    ),
)


def evaluate_badge_rules(stats: UserStats, earned: set[str] | frozenset[str] = frozenset()) -> list[BadgeRule]:
    """Return the rules that hold for stats and are not already in earned."""
    return [rule for rule in BADGE_RULES if rule.name not in earned and rule.check(stats)]


def crossed_milestones(previous: int, current: int) -> list[int]:
    """Milestones m with previous < m <= current (upward crossings only)."""
    return [m for m in sorted(settings.reputation_milestones) if previous < m <= current]


async def award_reputation(
    db: AsyncSession,
    user_id: int,
    delta: int,
    reason: str,
    report_id: Optional[int] = None,
) -> None:
    """Award (positive delta) or deduct (negative delta) reputation points.

    Appends one ReputationEvent and applies the same delta to
    users.reputation with an in-database increment. Database errors propagate
    to the caller.

    Args:
        db: Async session (caller manages commit/rollback).
        user_id: User receiving the delta.
        delta: Signed point change.
        reason: Human-readable reason stored on the event.
        report_id: Price report that caused the change, if any.
    """
    db.add(ReputationEvent(user_id=user_id, delta=delta, reason=reason, report_id=report_id))
    await db.flush()

    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(reputation=User.reputation + delta)
        .execution_options(synchronize_session=False)
    )

    reputation_events.labels(direction="award" if delta >= 0 else "deduct").inc()
    log.info("reputation_awarded", user_id=user_id, delta=delta, reason=reason, report_id=report_id)

    if settings.notify_reputation_milestones and delta > 0:
        result = await db.execute(select(User.reputation).where(User.id == user_id))
        current = result.scalar_one_or_none()
        if current is not None:
            for milestone in crossed_milestones(current - delta, current):
                await notify_reputation_milestone(db, user_id, milestone)


async def get_user_stats(db: AsyncSession, user_id: int) -> Optional[UserStats]:
    """Read the counters badge rules are evaluated against. None if no such user."""
    result = await db.execute(
        select(User.report_count, User.verified_report_count).where(User.id == user_id)
    )
    row = result.one_or_none()
    if row is None:
        return None

    helpful_result = await db.execute(
        select(func.count())
        .select_from(ReportVote)
        .join(PriceReport, ReportVote.report_id == PriceReport.id)
        .where(PriceReport.user_id == user_id)
        .where(ReportVote.is_helpful.is_(True))
    )

    return UserStats(
        report_count=row.report_count,
        verified_report_count=row.verified_report_count,
        helpful_votes_received=helpful_result.scalar_one() or 0,
    )


async def get_earned_badge_names(db: AsyncSession, user_id: int) -> set[str]:
    result = await db.execute(
        select(Badge.name)
        .join(UserBadge, UserBadge.badge_id == Badge.id)
        .where(UserBadge.user_id == user_id)
    )
    return set(result.scalars().all())


async def get_or_create_badge_id(db: AsyncSession, rule: BadgeRule) -> int:
    """Ensure the badge definition row exists and return its id.

    INSERT ... ON CONFLICT (name) DO NOTHING, then re-read by name, so two
    requests unlocking the same badge for the first time both succeed.
    """
    await db.execute(
        insert_for(db, Badge.__table__)
        .values(name=rule.name, description=rule.description)
        .on_conflict_do_nothing(index_elements=["name"])
    )
    result = await db.execute(select(Badge.id).where(Badge.name == rule.name))
    return result.scalar_one()


async def check_and_award_badges(db: AsyncSession, user_id: int) -> list[BadgeRule]:
    """Grant every badge whose unlock condition now holds for user_id.

    Safe to call repeatedly: a second call with no intervening state change
    awards nothing.

    Returns:
        The rules newly awarded by this call, in BADGE_RULES order.
    """
    stats = await get_user_stats(db, user_id)
    if stats is None:
        return []

    earned = await get_earned_badge_names(db, user_id)
    awarded: list[BadgeRule] = []

    for rule in evaluate_badge_rules(stats, earned):
        badge_id = await get_or_create_badge_id(db, rule)
        result = await db.execute(
            insert_for(db, UserBadge.__table__)
            .values(user_id=user_id, badge_id=badge_id)
            .on_conflict_do_nothing(index_elements=["user_id", "badge_id"])
        )
        if result.rowcount == 0:
            # A concurrent check granted it first
            continue

        awarded.append(rule)
        badges_awarded.labels(badge=rule.name).inc()
        log.info("badge_awarded", user_id=user_id, badge=rule.name)

        if settings.notify_badge_earned:
            await notify_badge_earned(db, user_id, rule.name, rule.description)

    return awarded
