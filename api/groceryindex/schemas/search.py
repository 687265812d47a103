from datetime import datetime

from pydantic import BaseModel

from groceryindex.schemas.common import Money


class ItemHit(BaseModel):
    id: int
    name: str
    slug: str
    category: str
    default_unit: str


class MarketHit(BaseModel):
    id: int
    name: str
    region_id: int


class ReportHit(BaseModel):
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


class SearchResponse(BaseModel):
    query: str
    items: list[ItemHit]
    markets: list[MarketHit]
    reports: list[ReportHit]
