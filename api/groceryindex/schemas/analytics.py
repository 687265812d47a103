"""Pydantic schemas for the community pulse and price index endpoints."""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel

from groceryindex.schemas.common import Money

Timeframe = Literal["7d", "30d", "90d", "1y"]


class RegionEcho(BaseModel):
    id: Optional[int] = None
    name: str


class PulseTotals(BaseModel):
    total_reports: int
    verified_reports: int
    pending_reports: int
    active_markets: int
    active_contributors: int
    last_reported_at: Optional[datetime] = None
    total_items: int


class PulseDay(BaseModel):
    date: date
    reports: int
    verified_reports: int


class CommunityPulseResponse(BaseModel):
    region: RegionEcho
    days: int
    totals: PulseTotals
    series: list[PulseDay]


class IndexedItem(BaseModel):
    id: int
    name: str
    default_unit: str
    currency: str


class PriceIndexStats(BaseModel):
    avg_price: Money
    min_price: Money
    max_price: Money
    report_count: int
    latest_price: Optional[Money] = None
    latest_reported_at: Optional[datetime] = None


class PriceIndexDay(BaseModel):
    date: date
    avg_price: Money


class PriceIndexResponse(BaseModel):
    item: IndexedItem
    timeframe: Timeframe
    stats: PriceIndexStats
    series: list[PriceIndexDay]
