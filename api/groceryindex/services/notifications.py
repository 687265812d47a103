"""In-app notification dispatch.

Each helper builds the canned title/message for one notification type and
stores ids/names in the metadata payload for client-side rendering. Rows are
added to the caller's session; the caller commits. There is no push, email,
or retry: a notification exists once its row is committed.
"""

from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from groceryindex.models.notification import Notification, NotificationType

log = structlog.get_logger()

VALID_TYPES = {t.value for t in NotificationType}


async def create_notification(
    db: AsyncSession,
    user_id: int,
    type_: str,
    title: str,
    message: str,
    metadata: dict[str, Any] | None = None,
) -> Notification:
    """Add a notification row for user_id and flush it to obtain its id."""
    if type_ not in VALID_TYPES:
        raise ValueError(f"Invalid notification type: {type_}. Must be one of {sorted(VALID_TYPES)}")

    notification = Notification(
        user_id=user_id,
        type=type_,
        title=title,
        message=message,
        metadata_json=metadata or {},
        is_read=False,
    )
    db.add(notification)
    await db.flush()

    log.info("notification_created", user_id=user_id, type=type_, notification_id=notification.id)
    return notification


async def notify_report_verified(
    db: AsyncSession, user_id: int, report_id: int, item_name: str
) -> Notification:
    return await create_notification(
        db,
        user_id,
        NotificationType.report_verified.value,
        title="Report Verified",
        message=f"Your price report for {item_name} has been verified",
        metadata={"report_id": report_id, "item_name": item_name},
    )


async def notify_report_commented(
    db: AsyncSession, user_id: int, report_id: int, item_name: str, commenter_name: str
) -> Notification:
    return await create_notification(
        db,
        user_id,
        NotificationType.report_commented.value,
        title="New Comment",
        message=f"{commenter_name} commented on your {item_name} report",
        metadata={"report_id": report_id, "item_name": item_name, "commenter_name": commenter_name},
    )


async def notify_report_upvoted(
    db: AsyncSession, user_id: int, report_id: int, item_name: str, voter_name: str
) -> Notification:
    return await create_notification(
        db,
        user_id,
        NotificationType.report_upvoted.value,
        title="Helpful Vote",
        message=f"{voter_name} found your {item_name} report helpful",
        metadata={"report_id": report_id, "item_name": item_name, "voter_name": voter_name},
    )


async def notify_new_follower_report(
    db: AsyncSession, user_id: int, report_id: int, item_name: str, reporter_name: str
) -> Notification:
    # No follow graph exists yet, so nothing calls this.
    return await create_notification(
        db,
        user_id,
        NotificationType.new_follower_report.value,
        title="New Report",
        message=f"{reporter_name} posted a new price for {item_name}",
        metadata={"report_id": report_id, "item_name": item_name, "reporter_name": reporter_name},
    )


async def notify_badge_earned(
    db: AsyncSession, user_id: int, badge_name: str, badge_description: str
) -> Notification:
    return await create_notification(
        db,
        user_id,
        NotificationType.badge_earned.value,
        title="Badge Earned!",
        message=f'You earned the "{badge_name}" badge: {badge_description}',
        metadata={"badge_name": badge_name, "badge_description": badge_description},
    )


async def notify_reputation_milestone(
    db: AsyncSession, user_id: int, reputation: int
) -> Notification:
    return await create_notification(
        db,
        user_id,
        NotificationType.reputation_milestone.value,
        title="Reputation Milestone",
        message=f"Congratulations! You've reached {reputation} reputation points",
        metadata={"reputation": reputation},
    )


def display_name(name: str | None, email: str) -> str:
    """Name shown to other users: the profile name, else the email local part."""
    if name:
        return name
    return email.split("@", 1)[0]
