"""ReputationEvent ORM model.

Append-only audit log of every reputation point delta. Rows are never
updated or deleted: users.reputation is a denormalized running sum that must
equal SUM(delta) for the user. The reconciliation worker rebuilds the column
from this table.

report_id links an event to the price report that caused it (verification,
helpful vote, retraction) so per-report earnings can be shown without
parsing the free-text reason.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User


class ReputationEvent(Base):
    """A single signed point delta with a human-readable reason."""

    __tablename__ = "user_reputation_events"

    __table_args__ = (
        Index("ix_reputation_events_user_id", "user_id"),
        Index("ix_reputation_events_report_id", "report_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", name="fk_reputation_events_user_id_users"),
        nullable=False,
    )
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    report_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("price_reports.id", name="fk_reputation_events_report_id_price_reports"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationship: lazy="raise", no implicit loading in async context
    user: Mapped["User"] = relationship("User", lazy="raise", foreign_keys=[user_id])
