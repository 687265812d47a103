"""Seed the catalog: regions, their markets, and the core grocery items.

Loads seed_catalog.json and inserts whatever is missing.

Usage:
    cd api
    DATABASE_URL="postgresql+asyncpg://..." python -m fixtures.seed_fixtures

The script is idempotent: regions match on (name, country), markets on
(region, name) and items on slug. Existing items are refreshed from the file
and reactivated.
"""
import asyncio
import json
import sys
from decimal import Decimal
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from groceryindex.database import async_session_factory
from groceryindex.models.item import Item
from groceryindex.models.market import Market
from groceryindex.models.region import Region

FIXTURES_DIR = Path(__file__).parent
SEED_CATALOG_FILE = FIXTURES_DIR / "seed_catalog.json"


async def get_or_create_region(session: AsyncSession, name: str, country: str) -> tuple[Region, bool]:
    result = await session.execute(
        select(Region).where(Region.name == name).where(Region.country == country)
    )
    region = result.scalar_one_or_none()
    if region is not None:
        return region, False

    region = Region(name=name, country=country)
    session.add(region)
    await session.flush()
    return region, True


async def get_or_create_market(session: AsyncSession, region_id: int, fixture: dict) -> bool:
    result = await session.execute(
        select(Market.id).where(Market.region_id == region_id).where(Market.name == fixture["name"])
    )
    if result.scalar_one_or_none() is not None:
        return False

    session.add(
        Market(
            name=fixture["name"],
            region_id=region_id,
            latitude=Decimal(fixture["latitude"]) if fixture.get("latitude") else None,
            longitude=Decimal(fixture["longitude"]) if fixture.get("longitude") else None,
        )
    )
    await session.flush()
    return True


async def upsert_item(session: AsyncSession, fixture: dict) -> bool:
    """Insert the item or refresh the existing row with the same slug. True if inserted."""
    result = await session.execute(select(Item).where(Item.slug == fixture["slug"]))
    item = result.scalar_one_or_none()
    if item is None:
        session.add(
            Item(
                name=fixture["name"],
                slug=fixture["slug"],
                category=fixture.get("category", "uncategorized"),
                default_unit=fixture.get("default_unit", "unit"),
            )
        )
        await session.flush()
        return True

    item.name = fixture["name"]
    item.category = fixture.get("category", item.category)
    item.default_unit = fixture.get("default_unit", item.default_unit)
    item.is_active = True
    await session.flush()
    return False


async def load_catalog(session: AsyncSession, catalog: dict) -> dict[str, int]:
    """Apply a catalog document to the session. Returns counts of created rows.

    Does not commit.
    """
    counts = {"regions": 0, "markets": 0, "items": 0}

    for region_fixture in catalog.get("regions", []):
        region, created = await get_or_create_region(
            session, region_fixture["name"], region_fixture["country"]
        )
        counts["regions"] += int(created)
        for market_fixture in region_fixture.get("markets", []):
            counts["markets"] += int(await get_or_create_market(session, region.id, market_fixture))

    for item_fixture in catalog.get("items", []):
        counts["items"] += int(await upsert_item(session, item_fixture))

    return counts


async def seed() -> None:
    if not SEED_CATALOG_FILE.exists():
        print(f"Error: seed_catalog.json not found at {SEED_CATALOG_FILE}", file=sys.stderr)
        sys.exit(1)

    with open(SEED_CATALOG_FILE, "r") as f:
        catalog = json.load(f)

    async with async_session_factory() as session:
        counts = await load_catalog(session, catalog)
        await session.commit()

    print("Seeding complete!")
    print(f"  Created: {counts['regions']} regions, {counts['markets']} markets, {counts['items']} items")


if __name__ == "__main__":
    asyncio.run(seed())
