from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .price_report import PriceReport
    from .user import User

# Also named in the initial migration
REPORT_VOTE_UNIQUE_CONSTRAINT = "uq_report_votes_report_id_user_id"


class ReportVote(Base):
    """One helpful/not-helpful state per (report, user).

    Casting and retracting flip is_helpful on the existing row; a second
    row for the same pair is rejected by the unique constraint.
    """

    __tablename__ = "report_votes"
    __table_args__ = (
        UniqueConstraint("report_id", "user_id", name=REPORT_VOTE_UNIQUE_CONSTRAINT),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    report_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("price_reports.id", name="fk_report_votes_report_id_price_reports"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", name="fk_report_votes_user_id_users"),
        nullable=False,
    )
    is_helpful: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    report: Mapped["PriceReport"] = relationship("PriceReport", back_populates="votes", lazy="raise")
    voter: Mapped["User"] = relationship("User", back_populates="votes", lazy="raise")
