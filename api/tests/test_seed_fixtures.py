"""Catalog seeding from seed_catalog.json."""

import json

import pytest
from sqlalchemy import func, select

from fixtures.seed_fixtures import SEED_CATALOG_FILE, load_catalog
from groceryindex.models import Item, Market, Region

pytestmark = pytest.mark.asyncio


@pytest.fixture
def seed_catalog() -> dict:
    with open(SEED_CATALOG_FILE) as f:
        return json.load(f)


async def count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


class TestLoadCatalog:
    async def test_first_load_creates_everything(self, db, seed_catalog):
        counts = await load_catalog(db, seed_catalog)
        await db.commit()

        expected_markets = sum(len(r["markets"]) for r in seed_catalog["regions"])
        assert counts == {
            "regions": len(seed_catalog["regions"]),
            "markets": expected_markets,
            "items": len(seed_catalog["items"]),
        }
        assert await count(db, Region) == len(seed_catalog["regions"])
        assert await count(db, Market) == expected_markets
        assert await count(db, Item) == len(seed_catalog["items"])

    async def test_reloading_creates_nothing(self, db, seed_catalog):
        await load_catalog(db, seed_catalog)
        await db.commit()

        counts = await load_catalog(db, seed_catalog)
        await db.commit()

        assert counts == {"regions": 0, "markets": 0, "items": 0}
        assert await count(db, Item) == len(seed_catalog["items"])

    async def test_existing_item_is_refreshed_and_reactivated(self, db):
        db.add(Item(name="Old name", slug="sugar-1kg", category="misc", is_active=False))
        await db.commit()

        counts = await load_catalog(
            db,
            {"items": [{"name": "Sugar (1kg)", "slug": "sugar-1kg", "category": "grocery", "default_unit": "pack"}]},
        )
        await db.commit()

        assert counts["items"] == 0
        item = (await db.execute(select(Item).where(Item.slug == "sugar-1kg"))).scalar_one()
        assert item.name == "Sugar (1kg)"
        assert item.category == "grocery"
        assert item.default_unit == "pack"
        assert item.is_active is True

    async def test_markets_keep_coordinates(self, db, seed_catalog):
        await load_catalog(db, seed_catalog)
        await db.commit()

        market = (
            await db.execute(select(Market).where(Market.name == "Pasar Besar Chow Kit"))
        ).scalar_one()
        assert str(market.latitude) == "3.164100"
