"""Community pulse and price index endpoints. Public, read-only."""

from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, Path, Query

from groceryindex.dependencies import DbSession
from groceryindex.schemas.analytics import (
    CommunityPulseResponse,
    IndexedItem,
    PriceIndexDay,
    PriceIndexResponse,
    PriceIndexStats,
    PulseDay,
    PulseTotals,
    RegionEcho,
    Timeframe,
)
from groceryindex.schemas.common import DataResponse
from groceryindex.services.analytics import community_pulse, price_index

router = APIRouter(prefix="/api/v1", tags=["analytics"])


@router.get("/community/pulse", response_model=DataResponse[CommunityPulseResponse])
async def get_community_pulse(
    db: DbSession,
    region_id: Optional[int] = Query(None, gt=0),
    days: int = Query(7, ge=0, le=365, description="0 for all time"),
) -> DataResponse[CommunityPulseResponse]:
    pulse = await community_pulse(db, region_id=region_id, days=days)
    totals = pulse.totals
    return DataResponse(
        data=CommunityPulseResponse(
            region=RegionEcho(id=pulse.region_id, name=pulse.region_name),
            days=pulse.days,
            totals=PulseTotals(
                total_reports=totals.total_reports,
                verified_reports=totals.verified_reports,
                pending_reports=totals.pending_reports,
                active_markets=totals.active_markets,
                active_contributors=totals.active_contributors,
                last_reported_at=totals.last_reported_at,
                total_items=totals.total_items,
            ),
            series=[
                PulseDay(date=d.date, reports=d.reports, verified_reports=d.verified_reports)
                for d in pulse.series
            ],
        )
    )


@router.get("/price-index/{item_id}", response_model=DataResponse[PriceIndexResponse])
async def get_price_index(
    item_id: Annotated[int, Path(gt=0)],
    db: DbSession,
    region_id: Optional[int] = Query(None, gt=0),
    timeframe: Timeframe = Query("30d"),
) -> DataResponse[PriceIndexResponse]:
    index = await price_index(db, item_id, region_id=region_id, timeframe=timeframe)
    if index is None:
        raise HTTPException(status_code=404, detail="Item not found")

    stats = index.stats
    return DataResponse(
        data=PriceIndexResponse(
            item=IndexedItem(
                id=index.item.id,
                name=index.item.name,
                default_unit=index.item.default_unit,
                currency=index.item.currency,
            ),
            timeframe=index.timeframe,
            stats=PriceIndexStats(
                avg_price=stats.avg_price,
                min_price=stats.min_price,
                max_price=stats.max_price,
                report_count=stats.report_count,
                latest_price=stats.latest_price,
                latest_reported_at=stats.latest_reported_at,
            ),
            series=[PriceIndexDay(date=d.date, avg_price=d.avg_price) for d in index.series],
        )
    )
