"""Price report endpoints.

POST /api/v1/price-reports                     -- submit a pending report
GET  /api/v1/price-reports/feed                -- newest-first feed, keyset paginated
GET  /api/v1/price-reports/{report_id}         -- joined detail with comments and action flags
POST /api/v1/price-reports/{report_id}/verify  -- pending -> verified
POST /api/v1/price-reports/{report_id}/reject  -- pending -> rejected (moderators)
POST /api/v1/price-reports/{report_id}/comments

Every write commits exactly once, after the lifecycle service has applied the
transition and all of its side effects.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, Path, Query
from sqlalchemy import func, select

from groceryindex.dependencies import CurrentUser, DbSession, OptionalUser, RequireModerator
from groceryindex.middleware.rate_limiter import WriteRateLimit
from groceryindex.models.comment import ReportComment
from groceryindex.models.item import Item
from groceryindex.models.market import Market
from groceryindex.models.price_report import PriceReport, ReportStatus
from groceryindex.models.region import Region
from groceryindex.models.user import User
from groceryindex.models.vote import ReportVote
from groceryindex.routers.errors import lifecycle_http_error
from groceryindex.schemas.common import CursorPage, DataResponse
from groceryindex.schemas.price_report import (
    CommentCreate,
    CommentResponse,
    FeedEntry,
    PriceReportCreate,
    PriceReportDetail,
    PriceReportResponse,
    RejectRequest,
    ReportActions,
)
from groceryindex.services import report_lifecycle
from groceryindex.services.report_lifecycle import ReportLifecycleError

router = APIRouter(prefix="/api/v1/price-reports", tags=["price-reports"])

ReportId = Annotated[int, Path(gt=0)]


@router.post("", response_model=DataResponse[PriceReportResponse], status_code=201)
async def submit_price_report(
    body: PriceReportCreate,
    user: CurrentUser,
    db: DbSession,
    _rate: WriteRateLimit,
) -> DataResponse[PriceReportResponse]:
    try:
        report = await report_lifecycle.submit_report(
            db,
            reporter=user,
            item_id=body.item_id,
            market_id=body.market_id,
            price=body.price,
            variant_id=body.variant_id,
            reported_at=body.reported_at,
        )
    except ReportLifecycleError as exc:
        raise lifecycle_http_error(exc)

    await db.commit()
    await db.refresh(report)
    return DataResponse(data=PriceReportResponse.model_validate(report))


@router.get("/feed", response_model=DataResponse[CursorPage[FeedEntry]])
async def price_report_feed(
    db: DbSession,
    user: OptionalUser,
    region_id: Optional[int] = Query(None, gt=0),
    cursor: Optional[int] = Query(None, gt=0, description="Return reports with id below this value"),
    limit: int = Query(20, ge=1, le=50),
) -> DataResponse[CursorPage[FeedEntry]]:
    """Newest reports first, enriched with vote and comment counts.

    Fetches limit + 1 rows to decide whether another page exists; next_cursor
    is the id of the last row returned.
    """
    stmt = (
        select(
            PriceReport.id,
            PriceReport.item_id,
            Item.name.label("item_name"),
            PriceReport.market_id,
            Market.name.label("market_name"),
            PriceReport.region_id,
            PriceReport.price,
            PriceReport.currency,
            PriceReport.status,
            PriceReport.reported_at,
            PriceReport.created_at,
        )
        .join(Item, PriceReport.item_id == Item.id)
        .join(Market, PriceReport.market_id == Market.id)
        .order_by(PriceReport.id.desc())
        .limit(limit + 1)
    )
    if region_id is not None:
        stmt = stmt.where(PriceReport.region_id == region_id)
    if cursor is not None:
        stmt = stmt.where(PriceReport.id < cursor)

    rows = (await db.execute(stmt)).all()
    has_next = len(rows) > limit
    rows = rows[:limit]
    report_ids = [row.id for row in rows]

    helpful_counts: dict[int, int] = {}
    comment_counts: dict[int, int] = {}
    voted: set[int] = set()

    if report_ids:
        vote_result = await db.execute(
            select(ReportVote.report_id, func.count())
            .where(ReportVote.report_id.in_(report_ids))
            .where(ReportVote.is_helpful.is_(True))
            .group_by(ReportVote.report_id)
        )
        helpful_counts = {report_id: count for report_id, count in vote_result.all()}

        comment_result = await db.execute(
            select(ReportComment.report_id, func.count())
            .where(ReportComment.report_id.in_(report_ids))
            .group_by(ReportComment.report_id)
        )
        comment_counts = {report_id: count for report_id, count in comment_result.all()}

        if user is not None:
            own_result = await db.execute(
                select(ReportVote.report_id)
                .where(ReportVote.report_id.in_(report_ids))
                .where(ReportVote.user_id == user.id)
                .where(ReportVote.is_helpful.is_(True))
            )
            voted = set(own_result.scalars().all())

    entries = [
        FeedEntry(
            **row._mapping,
            helpful_count=helpful_counts.get(row.id, 0),
            has_helpful_vote=row.id in voted,
            comment_count=comment_counts.get(row.id, 0),
        )
        for row in rows
    ]
    next_cursor = entries[-1].id if has_next and entries else None
    return DataResponse(data=CursorPage(items=entries, next_cursor=next_cursor))


@router.get("/{report_id}", response_model=DataResponse[PriceReportDetail])
async def get_price_report(
    db: DbSession,
    user: OptionalUser,
    report_id: ReportId,
) -> DataResponse[PriceReportDetail]:
    result = await db.execute(
        select(
            PriceReport.id,
            PriceReport.item_id,
            Item.name.label("item_name"),
            Item.category.label("item_category"),
            Item.default_unit,
            PriceReport.variant_id,
            PriceReport.currency,
            PriceReport.market_id,
            Market.name.label("market_name"),
            Region.id.label("region_id"),
            Region.name.label("region_name"),
            Region.country,
            PriceReport.price,
            PriceReport.status,
            PriceReport.user_id.label("reporter_user_id"),
            PriceReport.reported_at,
            PriceReport.verified_at,
            PriceReport.rejection_reason,
            PriceReport.created_at,
        )
        .join(Item, PriceReport.item_id == Item.id)
        .join(Market, PriceReport.market_id == Market.id)
        .join(Region, PriceReport.region_id == Region.id)
        .where(PriceReport.id == report_id)
    )
    row = result.one_or_none()
    if row is None:
        raise HTTPException(status_code=404, detail="Report not found")

    helpful_count = await report_lifecycle.count_helpful_votes(db, report_id)

    has_helpful_vote = False
    if user is not None:
        vote_result = await db.execute(
            select(ReportVote.is_helpful)
            .where(ReportVote.report_id == report_id)
            .where(ReportVote.user_id == user.id)
        )
        has_helpful_vote = bool(vote_result.scalar_one_or_none())

    comment_result = await db.execute(
        select(
            ReportComment.id,
            ReportComment.report_id,
            ReportComment.user_id,
            User.name.label("user_name"),
            ReportComment.message,
            ReportComment.created_at,
        )
        .join(User, ReportComment.user_id == User.id)
        .where(ReportComment.report_id == report_id)
        .order_by(ReportComment.created_at.desc(), ReportComment.id.desc())
        .limit(20)
    )
    comments = [CommentResponse(**c._mapping) for c in comment_result.all()]

    reporter_id = row.reporter_user_id
    actions = ReportActions(
        can_thumbs_up=user is not None and not has_helpful_vote,
        can_verify=(
            user is not None
            and row.status == ReportStatus.pending.value
            and reporter_id is not None
            and reporter_id != user.id
        ),
        can_comment=user is not None,
    )

    return DataResponse(
        data=PriceReportDetail(
            **row._mapping,
            helpful_count=helpful_count,
            has_helpful_vote=has_helpful_vote,
            comments=comments,
            actions=actions,
        )
    )


@router.post("/{report_id}/verify", response_model=DataResponse[PriceReportResponse])
async def verify_price_report(
    user: CurrentUser,
    db: DbSession,
    _rate: WriteRateLimit,
    report_id: ReportId,
) -> DataResponse[PriceReportResponse]:
    """Verify another user's pending report.

    403 for your own report (in any state), 409 if the report already left
    pending, including when a concurrent verification won the race.
    """
    try:
        report = await report_lifecycle.verify_report(db, report_id, verifier=user)
    except ReportLifecycleError as exc:
        raise lifecycle_http_error(exc)

    await db.commit()
    return DataResponse(data=PriceReportResponse.model_validate(report))


@router.post("/{report_id}/reject", response_model=DataResponse[PriceReportResponse])
async def reject_price_report(
    body: RejectRequest,
    moderator: RequireModerator,
    db: DbSession,
    _rate: WriteRateLimit,
    report_id: ReportId,
) -> DataResponse[PriceReportResponse]:
    try:
        report = await report_lifecycle.reject_report(db, report_id, moderator, body.reason)
    except ReportLifecycleError as exc:
        raise lifecycle_http_error(exc)

    await db.commit()
    return DataResponse(data=PriceReportResponse.model_validate(report))


@router.post(
    "/{report_id}/comments",
    response_model=DataResponse[CommentResponse],
    status_code=201,
)
async def comment_on_price_report(
    body: CommentCreate,
    user: CurrentUser,
    db: DbSession,
    _rate: WriteRateLimit,
    report_id: ReportId,
) -> DataResponse[CommentResponse]:
    try:
        comment = await report_lifecycle.add_comment(db, report_id, user, body.message)
    except ReportLifecycleError as exc:
        raise lifecycle_http_error(exc)

    await db.commit()
    await db.refresh(comment)
    return DataResponse(
        data=CommentResponse(
            id=comment.id,
            report_id=comment.report_id,
            user_id=comment.user_id,
            user_name=user.name,
            message=comment.message,
            created_at=comment.created_at,
        )
    )
