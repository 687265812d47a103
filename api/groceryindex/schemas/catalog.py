"""Pydantic schemas for regions, items and markets."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from groceryindex.schemas.common import Money


class RegionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    country: str


class VariantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    sku: str


class ItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slug: str
    name: str
    category: str
    default_unit: str
    currency: str


class ItemDetail(ItemResponse):
    variants: list[VariantResponse]


class MarketResponse(BaseModel):
    id: int
    name: str
    region_id: int
    region_name: str
    country: str
    latitude: Optional[Decimal] = None
    longitude: Optional[Decimal] = None


class MarketPrice(BaseModel):
    item_id: int
    item_name: str
    price: Money
    currency: str
    status: str
    reported_at: datetime


class MarketReport(MarketPrice):
    id: int


class MarketStats(BaseModel):
    total_reports: int
    latest_reported_at: Optional[datetime] = None
    item_count: int


class MarketDetail(BaseModel):
    market: MarketResponse
    stats: MarketStats
    latest_prices: list[MarketPrice]
    recent_reports: list[MarketReport]
