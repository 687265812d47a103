"""Read-side aggregates: community pulse and per-item price index.

Both queries run against price_reports only and never touch the denormalized
user counters. Aggregates use portable SQL (CASE sums, date()) so the same
statements run on PostgreSQL and on the SQLite test database; money is
normalized to Decimal with two places in Python.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from groceryindex.models.item import Item
from groceryindex.models.price_report import PriceReport, ReportStatus
from groceryindex.models.region import Region

log = structlog.get_logger()

ALL_AREAS = "All Areas"

TIMEFRAME_DAYS: dict[str, int] = {
    "7d": 7,
    "30d": 30,
    "90d": 90,
    "1y": 365,
}


def to_money(value) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _as_date(value) -> date:
    # PostgreSQL returns date objects, SQLite returns 'YYYY-MM-DD' strings
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class PulseTotals:
    total_reports: int = 0
    verified_reports: int = 0
    pending_reports: int = 0
    active_markets: int = 0
    active_contributors: int = 0
    last_reported_at: Optional[datetime] = None
    total_items: int = 0


@dataclass
class PulseDay:
    date: date
    reports: int
    verified_reports: int


@dataclass
class CommunityPulse:
    region_id: Optional[int]
    region_name: str
    days: int
    totals: PulseTotals
    series: list[PulseDay] = field(default_factory=list)


@dataclass
class PriceIndexStats:
    avg_price: Decimal
    min_price: Decimal
    max_price: Decimal
    report_count: int
    latest_price: Optional[Decimal] = None
    latest_reported_at: Optional[datetime] = None


@dataclass
class PriceIndexDay:
    date: date
    avg_price: Decimal


@dataclass
class PriceIndex:
    item: Item
    timeframe: str
    stats: PriceIndexStats
    series: list[PriceIndexDay] = field(default_factory=list)


def _verified_sum():
    return func.sum(case((PriceReport.status == ReportStatus.verified.value, 1), else_=0))


def _pending_sum():
    return func.sum(case((PriceReport.status == ReportStatus.pending.value, 1), else_=0))


async def community_pulse(
    db: AsyncSession,
    region_id: Optional[int] = None,
    days: int = 7,
    now: Optional[datetime] = None,
) -> CommunityPulse:
    """Aggregate recent community activity.

    days == 0 means all time: no lower bound and no daily series. Reports
    dated in the future are always excluded.
    """
    now = now or datetime.now(timezone.utc)

    filters = [PriceReport.reported_at <= now]
    if region_id is not None:
        filters.append(PriceReport.region_id == region_id)
    if days > 0:
        filters.append(PriceReport.reported_at >= now - timedelta(days=days))

    totals_result = await db.execute(
        select(
            func.count().label("total_reports"),
            _verified_sum().label("verified_reports"),
            _pending_sum().label("pending_reports"),
            func.count(func.distinct(PriceReport.market_id)).label("active_markets"),
            func.count(func.distinct(PriceReport.user_id)).label("active_contributors"),
            func.max(PriceReport.reported_at).label("last_reported_at"),
        )
        .select_from(PriceReport)
        .where(*filters)
    )
    row = totals_result.one()

    items_result = await db.execute(
        select(func.count()).select_from(Item).where(Item.is_active.is_(True))
    )

    totals = PulseTotals(
        total_reports=row.total_reports or 0,
        verified_reports=row.verified_reports or 0,
        pending_reports=row.pending_reports or 0,
        active_markets=row.active_markets or 0,
        active_contributors=row.active_contributors or 0,
        last_reported_at=_as_utc(row.last_reported_at),
        total_items=items_result.scalar_one() or 0,
    )

    series: list[PulseDay] = []
    if days > 0:
        day = func.date(PriceReport.reported_at)
        series_result = await db.execute(
            select(
                day.label("day"),
                func.count().label("reports"),
                _verified_sum().label("verified_reports"),
            )
            .where(*filters)
            .group_by(day)
            .order_by(day)
        )
        series = [
            PulseDay(
                date=_as_date(r.day),
                reports=r.reports,
                verified_reports=r.verified_reports or 0,
            )
            for r in series_result
        ]

    region_name = ALL_AREAS
    echoed_region_id = None
    if region_id is not None:
        region_result = await db.execute(select(Region.name).where(Region.id == region_id))
        name = region_result.scalar_one_or_none()
        if name is not None:
            echoed_region_id, region_name = region_id, name

    return CommunityPulse(
        region_id=echoed_region_id,
        region_name=region_name,
        days=days,
        totals=totals,
        series=series,
    )


async def price_index(
    db: AsyncSession,
    item_id: int,
    region_id: Optional[int] = None,
    timeframe: str = "30d",
    now: Optional[datetime] = None,
) -> Optional[PriceIndex]:
    """Price statistics over verified reports for one item. None if the item is unknown."""
    item_result = await db.execute(select(Item).where(Item.id == item_id))
    item = item_result.scalar_one_or_none()
    if item is None:
        return None

    now = now or datetime.now(timezone.utc)
    filters = [
        PriceReport.item_id == item_id,
        PriceReport.status == ReportStatus.verified.value,
        PriceReport.reported_at >= now - timedelta(days=TIMEFRAME_DAYS[timeframe]),
    ]
    if region_id is not None:
        filters.append(PriceReport.region_id == region_id)

    stats_result = await db.execute(
        select(
            func.avg(PriceReport.price).label("avg_price"),
            func.min(PriceReport.price).label("min_price"),
            func.max(PriceReport.price).label("max_price"),
            func.count().label("report_count"),
        )
        .select_from(PriceReport)
        .where(*filters)
    )
    row = stats_result.one()

    latest_result = await db.execute(
        select(PriceReport.price, PriceReport.reported_at)
        .where(*filters)
        .order_by(PriceReport.reported_at.desc(), PriceReport.id.desc())
        .limit(1)
    )
    latest = latest_result.one_or_none()

    zero = Decimal("0.00")
    stats = PriceIndexStats(
        avg_price=to_money(row.avg_price) or zero,
        min_price=to_money(row.min_price) or zero,
        max_price=to_money(row.max_price) or zero,
        report_count=row.report_count or 0,
        latest_price=to_money(latest.price) if latest else None,
        latest_reported_at=_as_utc(latest.reported_at) if latest else None,
    )

    day = func.date(PriceReport.reported_at)
    series_result = await db.execute(
        select(day.label("day"), func.avg(PriceReport.price).label("avg_price"))
        .where(*filters)
        .group_by(day)
        .order_by(day)
    )
    series = [PriceIndexDay(date=_as_date(r.day), avg_price=to_money(r.avg_price)) for r in series_result]

    log.debug("price_index_computed", item_id=item_id, timeframe=timeframe, reports=stats.report_count)
    return PriceIndex(item=item, timeframe=timeframe, stats=stats, series=series)
