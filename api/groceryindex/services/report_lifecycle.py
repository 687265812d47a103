"""Price report lifecycle: submission, verification, rejection, helpful votes.

State machine:  pending -> verified
                pending -> rejected

Every function here takes the request's AsyncSession and never commits. The
router commits once after the last side effect, so a transition and its
reputation events, counter updates, badge grants and notifications are
applied together or not at all.

Design notes:
- A report leaves pending through a conditional UPDATE guarded by
  status = 'pending'. Two concurrent verifications both pass the initial
  read, but only one UPDATE matches a row; the other sees rowcount == 0 and
  raises ReportNotPendingError.
- The duplicate-submission guard (same user, item, market and clock hour)
  is a plain read before the insert. Two simultaneous submissions in the
  same hour can both succeed; there is no unique constraint behind it.
- Helpful votes are one row per (report, user). Casting flips the row to
  helpful, retracting flips it back; only an actual change moves reputation.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from groceryindex.config import settings
from groceryindex.database import insert_for
from groceryindex.metrics import helpful_votes, report_transitions, reports_submitted
from groceryindex.models.audit_log import AdminAuditLog
from groceryindex.models.comment import ReportComment
from groceryindex.models.item import Item, ItemVariant
from groceryindex.models.market import Market
from groceryindex.models.price_report import PriceReport, ReportStatus
from groceryindex.models.user import User
from groceryindex.models.vote import ReportVote
from groceryindex.services.notifications import (
    display_name,
    notify_report_commented,
    notify_report_upvoted,
    notify_report_verified,
)
from groceryindex.services.reputation import award_reputation, check_and_award_badges

log = structlog.get_logger()

CENT = Decimal("0.01")


class ReportLifecycleError(Exception):
    """Base class for business-rule violations in the report lifecycle."""


class ReportNotFoundError(ReportLifecycleError):
    pass


class ReportNotPendingError(ReportLifecycleError):
    pass


class SelfVerificationError(ReportLifecycleError):
    pass


class DuplicateReportError(ReportLifecycleError):
    pass


class InvalidReportReferenceError(ReportLifecycleError):
    """The submission names a market, item or variant that cannot be used."""


@dataclass(frozen=True)
class VoteOutcome:
    report_id: int
    helpful_count: int
    has_helpful_vote: bool
    changed: bool


def normalize_reported_at(value: Optional[datetime]) -> datetime:
    """Default to now; treat naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hour_window(reported_at: datetime) -> tuple[datetime, datetime]:
    """Half-open clock-hour window [hh:00, hh+1:00) containing reported_at."""
    start = reported_at.replace(minute=0, second=0, microsecond=0)
    return start, start + timedelta(hours=1)


async def get_report(db: AsyncSession, report_id: int) -> PriceReport:
    result = await db.execute(select(PriceReport).where(PriceReport.id == report_id))
    report = result.scalar_one_or_none()
    if report is None:
        raise ReportNotFoundError("Report not found")
    return report


async def count_helpful_votes(db: AsyncSession, report_id: int) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(ReportVote)
        .where(ReportVote.report_id == report_id)
        .where(ReportVote.is_helpful.is_(True))
    )
    return result.scalar_one() or 0


async def _item_name(db: AsyncSession, item_id: int) -> str:
    result = await db.execute(select(Item.name).where(Item.id == item_id))
    return result.scalar_one_or_none() or "item"


async def submit_report(
    db: AsyncSession,
    reporter: User,
    item_id: int,
    market_id: int,
    price: Decimal,
    variant_id: Optional[int] = None,
    reported_at: Optional[datetime] = None,
) -> PriceReport:
    """Create a pending price report for reporter.

    The report's region is copied from the market and its currency from the
    item. The reporter's report_count is incremented and their badges are
    re-checked; no reputation is awarded at submission.

    Raises:
        InvalidReportReferenceError: unknown market, unknown/inactive item,
            or a variant that does not belong to the item.
        DuplicateReportError: the reporter already reported this item at this
            market within the same clock hour.
    """
    market_result = await db.execute(
        select(Market.id, Market.region_id).where(Market.id == market_id)
    )
    market = market_result.one_or_none()
    if market is None:
        raise InvalidReportReferenceError("Invalid marketId")

    item_result = await db.execute(
        select(Item.id, Item.currency).where(Item.id == item_id).where(Item.is_active.is_(True))
    )
    item = item_result.one_or_none()
    if item is None:
        raise InvalidReportReferenceError("Invalid itemId")

    if variant_id is not None:
        variant_result = await db.execute(
            select(ItemVariant.id)
            .where(ItemVariant.id == variant_id)
            .where(ItemVariant.item_id == item_id)
        )
        if variant_result.scalar_one_or_none() is None:
            raise InvalidReportReferenceError("Invalid variantId")

    reported_at = normalize_reported_at(reported_at)
    window_start, window_end = hour_window(reported_at)

    duplicate = await db.execute(
        select(PriceReport.id)
        .where(PriceReport.user_id == reporter.id)
        .where(PriceReport.item_id == item_id)
        .where(PriceReport.market_id == market_id)
        .where(PriceReport.reported_at >= window_start)
        .where(PriceReport.reported_at < window_end)
        .limit(1)
    )
    if duplicate.scalar_one_or_none() is not None:
        raise DuplicateReportError("Duplicate report in the same hour")

    report = PriceReport(
        item_id=item_id,
        variant_id=variant_id,
        market_id=market_id,
        region_id=market.region_id,
        user_id=reporter.id,
        price=Decimal(price).quantize(CENT, rounding=ROUND_HALF_UP),
        currency=item.currency,
        reported_at=reported_at,
        status=ReportStatus.pending.value,
    )
    db.add(report)
    await db.flush()

    await db.execute(
        update(User)
        .where(User.id == reporter.id)
        .values(report_count=User.report_count + 1)
        .execution_options(synchronize_session=False)
    )
    await check_and_award_badges(db, reporter.id)

    reports_submitted.inc()
    log.info(
        "report_submitted",
        report_id=report.id,
        user_id=reporter.id,
        item_id=item_id,
        market_id=market_id,
    )
    return report


async def verify_report(db: AsyncSession, report_id: int, verifier: User) -> PriceReport:
    """Transition a pending report to verified and apply its side effects.

    Side effects: reporter +verified_report_points, reporter
    verified_report_count +1, reporter badge check, report_verified
    notification; verifier +verifier_points and verifier badge check.

    Raises:
        ReportNotFoundError: no such report.
        SelfVerificationError: verifier submitted the report (checked before
            the status so it applies in every state).
        ReportNotPendingError: the report already left pending, including
            losing a concurrent verification race.
    """
    report = await get_report(db, report_id)

    if report.user_id is not None and report.user_id == verifier.id:
        raise SelfVerificationError("You cannot verify your own report")

    if report.status != ReportStatus.pending.value:
        raise ReportNotPendingError("Report is not pending")

    result = await db.execute(
        update(PriceReport)
        .where(PriceReport.id == report_id)
        .where(PriceReport.status == ReportStatus.pending.value)
        .values(
            status=ReportStatus.verified.value,
            verified_by=verifier.id,
            verified_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ReportNotPendingError("Report status changed, please refresh")

    await db.refresh(report)

    reporter_id = report.user_id
    if reporter_id is not None:
        await award_reputation(
            db,
            reporter_id,
            settings.verified_report_points,
            f"report #{report_id} verified",
            report_id=report_id,
        )
        await db.execute(
            update(User)
            .where(User.id == reporter_id)
            .values(verified_report_count=User.verified_report_count + 1)
            .execution_options(synchronize_session=False)
        )
        await check_and_award_badges(db, reporter_id)
        await notify_report_verified(db, reporter_id, report_id, await _item_name(db, report.item_id))

    await award_reputation(
        db,
        verifier.id,
        settings.verifier_points,
        f"verified report #{report_id}",
        report_id=report_id,
    )
    await check_and_award_badges(db, verifier.id)

    report_transitions.labels(status=ReportStatus.verified.value).inc()
    log.info("report_verified", report_id=report_id, verifier_id=verifier.id, reporter_id=reporter_id)
    return report


async def reject_report(
    db: AsyncSession, report_id: int, moderator: User, reason: str
) -> PriceReport:
    """Transition a pending report to rejected and write an audit log row.

    Role checks belong to the caller. Rejection moves no reputation.
    """
    report = await get_report(db, report_id)
    if report.status != ReportStatus.pending.value:
        raise ReportNotPendingError("Report is not pending")

    result = await db.execute(
        update(PriceReport)
        .where(PriceReport.id == report_id)
        .where(PriceReport.status == ReportStatus.pending.value)
        .values(status=ReportStatus.rejected.value, rejection_reason=reason)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ReportNotPendingError("Report status changed, please refresh")

    db.add(
        AdminAuditLog(
            admin_id=moderator.id,
            action="reject",
            entity_type="price_report",
            entity_id=report_id,
            payload={"reason": reason},
        )
    )
    await db.flush()
    await db.refresh(report)

    report_transitions.labels(status=ReportStatus.rejected.value).inc()
    log.info("report_rejected", report_id=report_id, moderator_id=moderator.id)
    return report


async def cast_helpful_vote(db: AsyncSession, report_id: int, voter: User) -> VoteOutcome:
    """Mark report_id helpful for voter (insert, flip false->true, or no-op).

    Only an actual change to helpful credits the author (+helpful_vote_points,
    badge check, report_upvoted notification). Authors voting on their own
    report, and anonymous reports, move no reputation.
    """
    report = await get_report(db, report_id)

    result = await db.execute(
        select(ReportVote)
        .where(ReportVote.report_id == report_id)
        .where(ReportVote.user_id == voter.id)
    )
    existing = result.scalar_one_or_none()

    if existing is not None:
        changed = not existing.is_helpful
        if changed:
            existing.is_helpful = True
            await db.flush()
    else:
        # A concurrent cast by the same user hits the unique constraint and
        # becomes a no-op
        insert_result = await db.execute(
            insert_for(db, ReportVote.__table__)
            .values(report_id=report_id, user_id=voter.id, is_helpful=True)
            .on_conflict_do_nothing(index_elements=["report_id", "user_id"])
        )
        changed = insert_result.rowcount == 1

    author_id = report.user_id
    if changed:
        helpful_votes.labels(action="cast").inc()
        if author_id is not None and author_id != voter.id:
            await award_reputation(
                db,
                author_id,
                settings.helpful_vote_points,
                f"helpful vote on report #{report_id}",
                report_id=report_id,
            )
            await check_and_award_badges(db, author_id)
            await notify_report_upvoted(
                db,
                author_id,
                report_id,
                await _item_name(db, report.item_id),
                display_name(voter.name, voter.email),
            )

    helpful_count = await count_helpful_votes(db, report_id)
    log.info("helpful_vote_cast", report_id=report_id, voter_id=voter.id, changed=changed)
    return VoteOutcome(
        report_id=report_id,
        helpful_count=helpful_count,
        has_helpful_vote=True,
        changed=changed,
    )


async def retract_helpful_vote(db: AsyncSession, report_id: int, voter: User) -> VoteOutcome:
    """Flip voter's helpful vote on report_id back to not helpful.

    Deducts helpful_vote_points from the author when a helpful vote existed.
    Badges are not re-checked. Retracting a vote that was never cast changes
    nothing.
    """
    report = await get_report(db, report_id)

    result = await db.execute(
        select(ReportVote)
        .where(ReportVote.report_id == report_id)
        .where(ReportVote.user_id == voter.id)
        .where(ReportVote.is_helpful.is_(True))
    )
    existing = result.scalar_one_or_none()

    changed = existing is not None
    if existing is not None:
        existing.is_helpful = False
        await db.flush()
        helpful_votes.labels(action="retract").inc()

        author_id = report.user_id
        if author_id is not None and author_id != voter.id:
            await award_reputation(
                db,
                author_id,
                -settings.helpful_vote_points,
                f"helpful vote retracted on report #{report_id}",
                report_id=report_id,
            )

    helpful_count = await count_helpful_votes(db, report_id)
    log.info("helpful_vote_retracted", report_id=report_id, voter_id=voter.id, changed=changed)
    return VoteOutcome(
        report_id=report_id,
        helpful_count=helpful_count,
        has_helpful_vote=False,
        changed=changed,
    )


async def add_comment(
    db: AsyncSession, report_id: int, author: User, message: str
) -> ReportComment:
    """Attach a comment to a report and notify the report's author."""
    report = await get_report(db, report_id)

    comment = ReportComment(report_id=report_id, user_id=author.id, message=message)
    db.add(comment)
    await db.flush()

    if report.user_id is not None and report.user_id != author.id:
        await notify_report_commented(
            db,
            report.user_id,
            report_id,
            await _item_name(db, report.item_id),
            display_name(author.name, author.email),
        )

    log.info("report_commented", report_id=report_id, user_id=author.id, comment_id=comment.id)
    return comment
