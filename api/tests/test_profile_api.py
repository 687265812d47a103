"""Profile aggregation, badge listing and onboarding."""

import pytest

from conftest import hours_ago

pytestmark = pytest.mark.asyncio


async def submit_many(client, account, catalog, count: int) -> list[int]:
    """Submit count reports for the same item and market, one per clock hour."""
    ids = []
    for n in range(count):
        resp = await client.post(
            "/api/v1/price-reports",
            json={
                "item_id": catalog.item_id,
                "market_id": catalog.market_id,
                "price": f"{10 + n}.00",
                "reported_at": hours_ago(n + 1).isoformat(),
            },
            headers=account.headers,
        )
        assert resp.status_code == 201, resp.text
        ids.append(resp.json()["data"]["id"])
    return ids


async def earned(client, account) -> set[str]:
    resp = await client.get("/api/v1/badges", headers=account.headers)
    return {badge["name"] for badge in resp.json()["data"] if badge["earned"]}


class TestBadges:
    async def test_all_rules_listed_unearned(self, client, alice):
        resp = await client.get("/api/v1/badges", headers=alice.headers)
        assert resp.status_code == 200
        badges = resp.json()["data"]
        assert [b["name"] for b in badges] == [
            "First Reporter",
            "Trend Setter",
            "Veteran Reporter",
            "Accuracy Star",
            "Community Helper",
        ]
        assert not any(b["earned"] for b in badges)
        assert badges[1]["requirement"] == "Submit 10 reports"

    async def test_nine_reports_is_not_a_trend_setter(self, client, catalog, alice):
        await submit_many(client, alice, catalog, 9)
        assert await earned(client, alice) == {"First Reporter"}

    async def test_tenth_report_unlocks_trend_setter(self, client, catalog, alice):
        await submit_many(client, alice, catalog, 10)
        assert await earned(client, alice) == {"First Reporter", "Trend Setter"}


class TestProfile:
    async def test_new_user_profile(self, client, alice):
        resp = await client.get("/api/v1/profile/me", headers=alice.headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["user"]["id"] == alice.id
        assert data["stats"] == {
            "total_reports": 0,
            "verified_reports": 0,
            "badge_count": 0,
            "markets_covered": 0,
            "helpful_votes": 0,
        }
        assert data["badges"] == []
        assert data["recent_activity"] == []

    async def test_profile_reflects_activity(self, client, catalog, alice, bob, carol):
        [first, second] = await submit_many(client, alice, catalog, 2)
        other_market = await client.post(
            "/api/v1/price-reports",
            json={
                "item_id": catalog.item_id,
                "market_id": catalog.other_market_id,
                "price": "9.90",
                "reported_at": hours_ago(1).isoformat(),
            },
            headers=alice.headers,
        )
        third = other_market.json()["data"]["id"]

        await client.post(f"/api/v1/price-reports/{first}/verify", headers=bob.headers)
        await client.post(f"/api/v1/price-reports/{first}/vote", headers=carol.headers)
        await client.post(f"/api/v1/price-reports/{second}/vote", headers=carol.headers)

        data = (await client.get("/api/v1/profile/me", headers=alice.headers)).json()["data"]
        assert data["user"]["reputation"] == 15 + 2 + 2
        assert data["user"]["report_count"] == 3
        assert data["stats"] == {
            "total_reports": 3,
            "verified_reports": 1,
            "badge_count": 1,
            "markets_covered": 2,
            "helpful_votes": 2,
        }
        assert [b["name"] for b in data["badges"]] == ["First Reporter"]

        activity = {row["report_id"]: row for row in data["recent_activity"]}
        assert set(activity) == {first, second, third}
        assert activity[first]["status"] == "verified"
        assert activity[first]["reputation_delta"] == 17
        assert activity[first]["helpful_votes"] == 1
        assert activity[second]["reputation_delta"] == 2
        assert activity[third]["reputation_delta"] == 0
        assert activity[third]["market_name"] == "Bayan Baru Market"

    async def test_recent_activity_is_capped(self, client, catalog, alice):
        await submit_many(client, alice, catalog, 7)
        data = (await client.get("/api/v1/profile/me", headers=alice.headers)).json()["data"]
        assert len(data["recent_activity"]) == 5
        assert data["stats"]["total_reports"] == 7


class TestOnboarding:
    async def test_complete_onboarding(self, client, alice):
        resp = await client.post("/api/v1/onboarding/complete", headers=alice.headers)
        assert resp.status_code == 200
        assert resp.json()["data"] == {"onboarding_completed": True}

        session = (await client.get("/api/v1/auth/session", headers=alice.headers)).json()
        assert session["data"]["user"]["onboarding_completed"] is True

    async def test_completing_twice_is_harmless(self, client, alice):
        await client.post("/api/v1/onboarding/complete", headers=alice.headers)
        resp = await client.post("/api/v1/onboarding/complete", headers=alice.headers)
        assert resp.status_code == 200
