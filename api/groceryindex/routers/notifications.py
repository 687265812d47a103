"""Notification inbox endpoints.

GET   /api/v1/notifications                    -- newest first, with unread count
PATCH /api/v1/notifications                    -- mark all read
PATCH /api/v1/notifications/{notification_id}  -- mark one read
"""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query
from sqlalchemy import func, select, update

from groceryindex.dependencies import CurrentUser, DbSession
from groceryindex.middleware.rate_limiter import ReadRateLimit, WriteRateLimit
from groceryindex.models.notification import Notification
from groceryindex.schemas.common import DataResponse
from groceryindex.schemas.notification import (
    MarkAllReadResponse,
    NotificationList,
    NotificationResponse,
)

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=DataResponse[NotificationList])
async def list_notifications(
    user: CurrentUser,
    db: DbSession,
    _rate: ReadRateLimit,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> DataResponse[NotificationList]:
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user.id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .offset(offset)
    )
    notifications = result.scalars().all()

    unread = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user.id)
        .where(Notification.is_read.is_(False))
    )

    return DataResponse(
        data=NotificationList(
            items=[NotificationResponse.model_validate(n) for n in notifications],
            unread_count=unread.scalar_one() or 0,
        )
    )


@router.patch("", response_model=DataResponse[MarkAllReadResponse])
async def mark_all_read(
    user: CurrentUser,
    db: DbSession,
    _rate: WriteRateLimit,
) -> DataResponse[MarkAllReadResponse]:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user.id)
        .where(Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return DataResponse(data=MarkAllReadResponse(updated=result.rowcount or 0))


@router.patch("/{notification_id}", response_model=DataResponse[NotificationResponse])
async def mark_read(
    notification_id: Annotated[int, Path(gt=0)],
    user: CurrentUser,
    db: DbSession,
    _rate: WriteRateLimit,
) -> DataResponse[NotificationResponse]:
    """Mark one of the caller's notifications read. Other users' rows are a 404."""
    result = await db.execute(
        select(Notification)
        .where(Notification.id == notification_id)
        .where(Notification.user_id == user.id)
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")

    notification.is_read = True
    await db.commit()
    return DataResponse(data=NotificationResponse.model_validate(notification))
