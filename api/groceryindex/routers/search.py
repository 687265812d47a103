"""Search endpoint.

GET /api/v1/search?query=&region_id=&limit=

Case-insensitive substring match over three result groups:
- items by name or slug (active only)
- markets by name (active only, optionally within a region)
- reports by item name, pending or verified, never dated in the future,
  newest first
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, HTTPException, Query
from sqlalchemy import or_, select

from groceryindex.dependencies import DbSession
from groceryindex.models.item import Item
from groceryindex.models.market import Market
from groceryindex.models.price_report import PriceReport, ReportStatus
from groceryindex.schemas.common import DataResponse
from groceryindex.schemas.search import ItemHit, MarketHit, ReportHit, SearchResponse

log = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["search"])


@router.get("/search", response_model=DataResponse[SearchResponse])
async def search(
    db: DbSession,
    query: str = Query(..., min_length=1, max_length=100),
    region_id: Optional[int] = Query(None, gt=0),
    limit: int = Query(20, ge=1, le=50),
) -> DataResponse[SearchResponse]:
    term = query.strip()
    if not term:
        raise HTTPException(status_code=400, detail="query must not be blank")
    pattern = f"%{term}%"

    item_rows = (
        await db.execute(
            select(Item.id, Item.name, Item.slug, Item.category, Item.default_unit)
            .where(Item.is_active.is_(True))
            .where(or_(Item.name.ilike(pattern), Item.slug.ilike(pattern)))
            .order_by(Item.name)
            .limit(limit)
        )
    ).all()

    market_stmt = (
        select(Market.id, Market.name, Market.region_id)
        .where(Market.is_active.is_(True))
        .where(Market.name.ilike(pattern))
    )
    if region_id is not None:
        market_stmt = market_stmt.where(Market.region_id == region_id)
    market_rows = (await db.execute(market_stmt.order_by(Market.name).limit(limit))).all()

    report_stmt = (
        select(
            PriceReport.id,
            PriceReport.item_id,
            Item.name.label("item_name"),
            PriceReport.market_id,
            Market.name.label("market_name"),
            PriceReport.region_id,
            PriceReport.price,
            PriceReport.currency,
            PriceReport.status,
            PriceReport.reported_at,
        )
        .join(Item, PriceReport.item_id == Item.id)
        .join(Market, PriceReport.market_id == Market.id)
        .where(Item.name.ilike(pattern))
        .where(PriceReport.reported_at <= datetime.now(timezone.utc))
        .where(PriceReport.status.in_([ReportStatus.pending.value, ReportStatus.verified.value]))
    )
    if region_id is not None:
        report_stmt = report_stmt.where(PriceReport.region_id == region_id)
    report_rows = (
        await db.execute(
            report_stmt.order_by(PriceReport.reported_at.desc(), PriceReport.id.desc()).limit(limit)
        )
    ).all()

    log.info(
        "search_executed",
        query=term,
        items=len(item_rows),
        markets=len(market_rows),
        reports=len(report_rows),
    )

    return DataResponse(
        data=SearchResponse(
            query=term,
            items=[ItemHit(**row._mapping) for row in item_rows],
            markets=[MarketHit(**row._mapping) for row in market_rows],
            reports=[ReportHit(**row._mapping) for row in report_rows],
        )
    )
