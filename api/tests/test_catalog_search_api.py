"""Public catalog browsing and search."""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import hours_ago

pytestmark = pytest.mark.asyncio


async def report(client, account, catalog, market_id=None, item_id=None, price="10.00", hours=1):
    resp = await client.post(
        "/api/v1/price-reports",
        json={
            "item_id": item_id or catalog.item_id,
            "market_id": market_id or catalog.market_id,
            "price": price,
            "reported_at": hours_ago(hours).isoformat(),
        },
        headers=account.headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["id"]


class TestCatalog:
    async def test_regions_sorted_by_name(self, client, catalog):
        resp = await client.get("/api/v1/regions")
        assert resp.status_code == 200
        assert [r["name"] for r in resp.json()["data"]] == ["Klang Valley", "Penang"]

    async def test_items_hide_inactive(self, client, catalog):
        names = [i["name"] for i in (await client.get("/api/v1/items")).json()["data"]]
        assert names == ["Eggs (Grade A tray 30)", "Rice (10kg)"]

    async def test_items_filter_by_text_and_category(self, client, catalog):
        by_text = (await client.get("/api/v1/items", params={"q": "rice"})).json()["data"]
        assert [i["slug"] for i in by_text] == ["rice-10kg"]

        by_category = (await client.get("/api/v1/items", params={"category": "protein"})).json()["data"]
        assert [i["slug"] for i in by_category] == ["eggs-grade-a-tray-30"]

    async def test_item_detail_lists_variants(self, client, catalog):
        data = (await client.get(f"/api/v1/items/{catalog.item_id}")).json()["data"]
        assert data["currency"] == "MYR"
        assert data["variants"] == [{"id": catalog.variant_id, "name": "Tray of 30", "sku": "EGG-A-30"}]

    async def test_inactive_item_detail_is_not_found(self, client, catalog):
        resp = await client.get(f"/api/v1/items/{catalog.inactive_item_id}")
        assert resp.status_code == 404

    async def test_markets_filter_by_region(self, client, catalog):
        data = (
            await client.get("/api/v1/markets", params={"region_id": catalog.other_region_id})
        ).json()["data"]
        assert len(data) == 1
        assert data[0]["name"] == "Bayan Baru Market"
        assert data[0]["region_name"] == "Penang"
        assert data[0]["country"] == "Malaysia"

    async def test_market_detail_latest_price_per_item(self, client, catalog, alice, bob):
        await report(client, alice, catalog, price="11.00", hours=5)
        await report(client, bob, catalog, price="12.50", hours=2)
        await report(client, alice, catalog, item_id=catalog.other_item_id, price="38.90", hours=3)

        data = (await client.get(f"/api/v1/markets/{catalog.market_id}")).json()["data"]
        assert data["market"]["name"] == "Pasar Besar Chow Kit"
        assert data["stats"]["total_reports"] == 3
        assert data["stats"]["item_count"] == 2

        latest = {p["item_id"]: p["price"] for p in data["latest_prices"]}
        assert latest == {catalog.item_id: "12.50", catalog.other_item_id: "38.90"}
        assert [r["price"] for r in data["recent_reports"]] == ["12.50", "38.90", "11.00"]

    async def test_unknown_market_is_not_found(self, client, catalog):
        resp = await client.get("/api/v1/markets/4040")
        assert resp.status_code == 404
        assert resp.json()["error"]["message"] == "Market not found"


class TestSearch:
    async def test_groups_matches(self, client, catalog, alice):
        await report(client, alice, catalog)

        data = (await client.get("/api/v1/search", params={"query": "egg"})).json()["data"]
        assert data["query"] == "egg"
        assert [i["slug"] for i in data["items"]] == ["eggs-grade-a-tray-30"]
        assert data["markets"] == []
        assert [r["item_name"] for r in data["reports"]] == ["Eggs (Grade A tray 30)"]

    async def test_market_names_match(self, client, catalog):
        data = (await client.get("/api/v1/search", params={"query": "chow kit"})).json()["data"]
        assert [m["name"] for m in data["markets"]] == ["Pasar Besar Chow Kit"]

    async def test_rejected_and_future_reports_are_hidden(self, client, catalog, alice, moderator):
        rejected = await report(client, alice, catalog, hours=3)
        await client.post(
            f"/api/v1/price-reports/{rejected}/reject",
            json={"reason": "duplicate"},
            headers=moderator.headers,
        )
        future = (datetime.now(timezone.utc) + timedelta(days=2)).isoformat()
        await client.post(
            "/api/v1/price-reports",
            json={
                "item_id": catalog.item_id,
                "market_id": catalog.market_id,
                "price": "9.00",
                "reported_at": future,
            },
            headers=alice.headers,
        )
        kept = await report(client, alice, catalog, hours=1)

        data = (await client.get("/api/v1/search", params={"query": "eggs"})).json()["data"]
        assert [r["id"] for r in data["reports"]] == [kept]

    async def test_region_scopes_markets_and_reports(self, client, catalog, alice):
        await report(client, alice, catalog, market_id=catalog.other_market_id)

        klang = (
            await client.get(
                "/api/v1/search", params={"query": "eggs", "region_id": catalog.region_id}
            )
        ).json()["data"]
        assert klang["reports"] == []

        penang = (
            await client.get(
                "/api/v1/search", params={"query": "eggs", "region_id": catalog.other_region_id}
            )
        ).json()["data"]
        assert len(penang["reports"]) == 1

    @pytest.mark.parametrize("query", ["", "   "])
    async def test_blank_query_is_bad_request(self, client, query):
        resp = await client.get("/api/v1/search", params={"query": query})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BAD_REQUEST"
