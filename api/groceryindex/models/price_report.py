import enum
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groceryindex.config import settings

from .base import Base

if TYPE_CHECKING:
    from .item import Item, ItemVariant
    from .market import Market
    from .region import Region
    from .user import User
    from .vote import ReportVote


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportStatus(str, enum.Enum):
    pending = "pending"
    verified = "verified"
    rejected = "rejected"


class PriceReport(Base):
    __tablename__ = "price_reports"
    __table_args__ = (
        Index("ix_price_reports_item_region_reported", "item_id", "region_id", "reported_at"),
        Index("ix_price_reports_market_item_reported", "market_id", "item_id", "reported_at"),
        Index("ix_price_reports_user_created", "user_id", "created_at"),
        Index("ix_price_reports_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("items.id", name="fk_price_reports_item_id_items"), nullable=False
    )
    variant_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("item_variants.id", name="fk_price_reports_variant_id_item_variants"),
        nullable=True,
    )
    # Copied from the market at submission so regional queries skip the join
    region_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("regions.id", name="fk_price_reports_region_id_regions"), nullable=False
    )
    market_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("markets.id", name="fk_price_reports_market_id_markets"), nullable=False
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", name="fk_price_reports_user_id_users"), nullable=True
    )
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(
        String(3), default=lambda: settings.default_currency, nullable=False
    )
    reported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Three-state machine: a report leaves pending at most once
    status: Mapped[str] = mapped_column(
        String(20), default=ReportStatus.pending.value, nullable=False
    )
    verified_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", name="fk_price_reports_verified_by_users"), nullable=True
    )
    verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships: lazy="raise", load explicitly
    item: Mapped["Item"] = relationship("Item", lazy="raise")
    variant: Mapped[Optional["ItemVariant"]] = relationship("ItemVariant", lazy="raise")
    market: Mapped["Market"] = relationship("Market", lazy="raise")
    region: Mapped["Region"] = relationship("Region", lazy="raise")
    reporter: Mapped[Optional["User"]] = relationship(
        "User", back_populates="reports", foreign_keys=[user_id], lazy="raise"
    )
    votes: Mapped[list["ReportVote"]] = relationship(
        "ReportVote", back_populates="report", lazy="raise"
    )
