"""Read-only catalog endpoints: regions, items and markets. No auth required."""

from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, Path, Query
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from groceryindex.dependencies import DbSession
from groceryindex.models.item import Item
from groceryindex.models.market import Market
from groceryindex.models.price_report import PriceReport
from groceryindex.models.region import Region
from groceryindex.schemas.catalog import (
    ItemDetail,
    ItemResponse,
    MarketDetail,
    MarketPrice,
    MarketReport,
    MarketResponse,
    MarketStats,
    RegionResponse,
)
from groceryindex.schemas.common import DataResponse

router = APIRouter(prefix="/api/v1", tags=["catalog"])

# Latest-price-per-item is taken from this many newest reports
MARKET_REPORT_WINDOW = 80


def _market_columns():
    return select(
        Market.id,
        Market.name,
        Market.region_id,
        Region.name.label("region_name"),
        Region.country,
        Market.latitude,
        Market.longitude,
    ).join(Region, Market.region_id == Region.id)


@router.get("/regions", response_model=DataResponse[list[RegionResponse]])
async def list_regions(db: DbSession) -> DataResponse[list[RegionResponse]]:
    result = await db.execute(select(Region).order_by(Region.name))
    return DataResponse(data=[RegionResponse.model_validate(r) for r in result.scalars().all()])


@router.get("/items", response_model=DataResponse[list[ItemResponse]])
async def list_items(
    db: DbSession,
    q: Optional[str] = Query(None, max_length=100),
    category: Optional[str] = Query(None, max_length=100),
    limit: int = Query(20, ge=1, le=100),
) -> DataResponse[list[ItemResponse]]:
    stmt = select(Item).where(Item.is_active.is_(True))
    if q and q.strip():
        stmt = stmt.where(Item.name.ilike(f"%{q.strip()}%"))
    if category and category.strip():
        stmt = stmt.where(Item.category == category.strip())

    result = await db.execute(stmt.order_by(Item.name).limit(limit))
    return DataResponse(data=[ItemResponse.model_validate(i) for i in result.scalars().all()])


@router.get("/items/{item_id}", response_model=DataResponse[ItemDetail])
async def get_item(
    item_id: Annotated[int, Path(gt=0)],
    db: DbSession,
) -> DataResponse[ItemDetail]:
    result = await db.execute(
        select(Item)
        .options(selectinload(Item.variants))
        .where(Item.id == item_id)
        .where(Item.is_active.is_(True))
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return DataResponse(data=ItemDetail.model_validate(item))


@router.get("/markets", response_model=DataResponse[list[MarketResponse]])
async def list_markets(
    db: DbSession,
    region_id: Optional[int] = Query(None, gt=0),
    q: Optional[str] = Query(None, max_length=100),
) -> DataResponse[list[MarketResponse]]:
    stmt = _market_columns().where(Market.is_active.is_(True))
    if region_id is not None:
        stmt = stmt.where(Market.region_id == region_id)
    if q and q.strip():
        stmt = stmt.where(Market.name.ilike(f"%{q.strip()}%"))

    result = await db.execute(stmt.order_by(Market.name))
    return DataResponse(data=[MarketResponse(**row._mapping) for row in result.all()])


@router.get("/markets/{market_id}", response_model=DataResponse[MarketDetail])
async def get_market(
    market_id: Annotated[int, Path(gt=0)],
    db: DbSession,
) -> DataResponse[MarketDetail]:
    """Market with the latest price per item and its most recent reports."""
    market_row = (await db.execute(_market_columns().where(Market.id == market_id))).one_or_none()
    if market_row is None:
        raise HTTPException(status_code=404, detail="Market not found")

    report_rows = (
        await db.execute(
            select(
                PriceReport.id,
                PriceReport.item_id,
                Item.name.label("item_name"),
                PriceReport.price,
                PriceReport.currency,
                PriceReport.status,
                PriceReport.reported_at,
            )
            .join(Item, PriceReport.item_id == Item.id)
            .where(PriceReport.market_id == market_id)
            .order_by(PriceReport.reported_at.desc(), PriceReport.id.desc())
            .limit(MARKET_REPORT_WINDOW)
        )
    ).all()

    latest_by_item: dict[int, MarketPrice] = {}
    for row in report_rows:
        if row.item_id not in latest_by_item:
            latest_by_item[row.item_id] = MarketPrice(
                item_id=row.item_id,
                item_name=row.item_name,
                price=row.price,
                currency=row.currency,
                status=row.status,
                reported_at=row.reported_at,
            )

    return DataResponse(
        data=MarketDetail(
            market=MarketResponse(**market_row._mapping),
            stats=MarketStats(
                total_reports=len(report_rows),
                latest_reported_at=report_rows[0].reported_at if report_rows else None,
                item_count=len(latest_by_item),
            ),
            latest_prices=list(latest_by_item.values()),
            recent_reports=[MarketReport(**row._mapping) for row in report_rows[:10]],
        )
    )
