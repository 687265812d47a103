"""Pydantic schemas for price report submission, feed, detail and moderation."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from groceryindex.schemas.common import Money, round_to_cents

# numeric(10, 2) range once rounded to cents
MIN_PRICE = Decimal("0.01")
MAX_PRICE = Decimal("99999999.99")


class PriceReportCreate(BaseModel):
    """Request schema for submitting a new price report."""

    item_id: int = Field(gt=0)
    market_id: int = Field(gt=0)
    variant_id: Optional[int] = Field(None, gt=0)
    price: Decimal = Field(gt=0, lt=Decimal("100000000"))
    reported_at: Optional[datetime] = None

    @field_validator("price")
    @classmethod
    def round_price(cls, value: Decimal) -> Decimal:
        value = round_to_cents(value)
        if not MIN_PRICE <= value <= MAX_PRICE:
            raise ValueError(f"price must be between {MIN_PRICE} and {MAX_PRICE} after rounding to cents")
        return value


class PriceReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: int
    variant_id: Optional[int] = None
    market_id: int
    region_id: int
    user_id: Optional[int] = None
    price: Money
    currency: str
    status: str
    reported_at: datetime
    verified_by: Optional[int] = None
    verified_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime


class RejectRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("reason must not be blank")
        return value


class FeedEntry(BaseModel):
    id: int
    item_id: int
    item_name: str
    market_id: int
    market_name: str
    region_id: int
    price: Money
    currency: str
    status: str
    reported_at: datetime
    created_at: datetime
    helpful_count: int = 0
    has_helpful_vote: bool = False
    comment_count: int = 0


class CommentCreate(BaseModel):
    message: str = Field(min_length=1, max_length=500)

    @field_validator("message")
    @classmethod
    def strip_message(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("message must not be blank")
        return value


class CommentResponse(BaseModel):
    id: int
    report_id: int
    user_id: int
    user_name: Optional[str] = None
    message: str
    created_at: datetime


class ReportActions(BaseModel):
    can_thumbs_up: bool
    can_verify: bool
    can_comment: bool


class PriceReportDetail(BaseModel):
    id: int
    item_id: int
    item_name: str
    item_category: str
    default_unit: str
    variant_id: Optional[int] = None
    currency: str
    market_id: int
    market_name: str
    region_id: int
    region_name: str
    country: str
    price: Money
    status: str
    reporter_user_id: Optional[int] = None
    reported_at: datetime
    verified_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    helpful_count: int
    has_helpful_vote: bool
    comments: list[CommentResponse]
    actions: ReportActions
