import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .price_report import PriceReport
    from .vote import ReportVote


class UserRole(str, enum.Enum):
    user = "user"
    moderator = "moderator"
    admin = "admin"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    api_key_hash: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), default=UserRole.user.value, nullable=False, index=True
    )

    # Denormalized counters; the reconciliation worker rebuilds them from
    # user_reputation_events and price_reports.
    reputation: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    report_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    verified_report_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    reports: Mapped[list["PriceReport"]] = relationship(
        "PriceReport",
        back_populates="reporter",
        foreign_keys="PriceReport.user_id",
        lazy="raise",
    )
    votes: Mapped[list["ReportVote"]] = relationship(
        "ReportVote", back_populates="voter", lazy="raise"
    )
