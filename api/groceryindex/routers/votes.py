"""Helpful vote endpoints for price reports.

POST   /api/v1/price-reports/{report_id}/vote -- cast (or confirm) a helpful vote
DELETE /api/v1/price-reports/{report_id}/vote -- retract a helpful vote
"""

from typing import Annotated

from fastapi import APIRouter, Path

from groceryindex.dependencies import CurrentUser, DbSession
from groceryindex.middleware.rate_limiter import WriteRateLimit
from groceryindex.routers.errors import lifecycle_http_error
from groceryindex.schemas.common import DataResponse
from groceryindex.schemas.vote import VoteResponse
from groceryindex.services.report_lifecycle import (
    ReportLifecycleError,
    VoteOutcome,
    cast_helpful_vote,
    retract_helpful_vote,
)

router = APIRouter(prefix="/api/v1", tags=["votes"])


def _to_response(outcome: VoteOutcome) -> DataResponse[VoteResponse]:
    return DataResponse(
        data=VoteResponse(
            report_id=outcome.report_id,
            helpful_count=outcome.helpful_count,
            has_helpful_vote=outcome.has_helpful_vote,
        )
    )


@router.post("/price-reports/{report_id}/vote", response_model=DataResponse[VoteResponse])
async def cast_vote(
    report_id: Annotated[int, Path(gt=0)],
    user: CurrentUser,
    db: DbSession,
    _rate: WriteRateLimit,
) -> DataResponse[VoteResponse]:
    """Mark a report helpful.

    Repeating the call is a no-op: the count and the author's reputation
    change only on the first transition to helpful. Voting on your own report
    is allowed but earns nothing.
    """
    try:
        outcome = await cast_helpful_vote(db, report_id, user)
    except ReportLifecycleError as exc:
        raise lifecycle_http_error(exc)

    await db.commit()
    return _to_response(outcome)


@router.delete("/price-reports/{report_id}/vote", response_model=DataResponse[VoteResponse])
async def retract_vote(
    report_id: Annotated[int, Path(gt=0)],
    user: CurrentUser,
    db: DbSession,
    _rate: WriteRateLimit,
) -> DataResponse[VoteResponse]:
    try:
        outcome = await retract_helpful_vote(db, report_id, user)
    except ReportLifecycleError as exc:
        raise lifecycle_http_error(exc)

    await db.commit()
    return _to_response(outcome)
