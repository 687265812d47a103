"""End-to-end API tests for registration, submission, verification and votes."""

import pytest

from conftest import fetch_user, hours_ago

pytestmark = pytest.mark.asyncio


def report_body(catalog, price="4.50", **overrides) -> dict:
    body = {
        "item_id": catalog.item_id,
        "market_id": catalog.market_id,
        "price": price,
        "reported_at": hours_ago(2).isoformat(),
    }
    body.update(overrides)
    return body


async def submit(client, account, catalog, **overrides):
    return await client.post(
        "/api/v1/price-reports", json=report_body(catalog, **overrides), headers=account.headers
    )


class TestRegistration:
    async def test_register_then_probe_session(self, client):
        resp = await client.post("/api/v1/keys", json={"email": "Dana@Example.com", "name": "Dana"})
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["api_key"]
        assert data["user_id"] > 0

        session = await client.get("/api/v1/auth/session", headers={"X-API-Key": data["api_key"]})
        assert session.status_code == 200
        user = session.json()["data"]["user"]
        assert user["email"] == "dana@example.com"
        assert user["reputation"] == 0

    async def test_duplicate_email_conflicts(self, client):
        await client.post("/api/v1/keys", json={"email": "dup@example.com"})
        resp = await client.post("/api/v1/keys", json={"email": "DUP@example.com"})
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "CONFLICT"

    async def test_malformed_email_is_bad_request(self, client):
        resp = await client.post("/api/v1/keys", json={"email": "not-an-email"})
        assert resp.status_code == 400
        body = resp.json()["error"]
        assert body["code"] == "BAD_REQUEST"
        assert body["details"]

    async def test_anonymous_session_is_null(self, client):
        resp = await client.get("/api/v1/auth/session")
        assert resp.status_code == 200
        assert resp.json() == {"data": {"user": None}}


class TestAuthentication:
    async def test_missing_key_is_unauthenticated(self, client, catalog):
        resp = await client.post("/api/v1/price-reports", json=report_body(catalog))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHENTICATED"

    async def test_unknown_key_is_unauthenticated(self, client, catalog):
        resp = await client.post(
            "/api/v1/price-reports",
            json=report_body(catalog),
            headers={"X-API-Key": "definitely-not-issued"},
        )
        assert resp.status_code == 401


class TestSubmission:
    async def test_submit_returns_pending_report(self, client, catalog, alice):
        resp = await submit(client, alice, catalog, price="4.5")
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["status"] == "pending"
        assert data["price"] == "4.50"
        assert data["currency"] == "MYR"
        assert data["region_id"] == catalog.region_id
        assert data["user_id"] == alice.id

    async def test_same_hour_resubmission_conflicts(self, client, catalog, alice):
        at = hours_ago(5).replace(minute=10).isoformat()
        first = await submit(client, alice, catalog, reported_at=at)
        assert first.status_code == 201

        again = await submit(client, alice, catalog, price="4.80", reported_at=at)
        assert again.status_code == 409
        assert again.json()["error"]["message"] == "Duplicate report in the same hour"

    async def test_invalid_market_is_bad_request(self, client, catalog, alice):
        resp = await submit(client, alice, catalog, market_id=999_999)
        assert resp.status_code == 400
        assert resp.json()["error"] == {
            "code": "BAD_REQUEST",
            "message": "Invalid marketId",
            "details": None,
        }

    @pytest.mark.parametrize("price", ["0", "-1.00", "100000000"])
    async def test_out_of_range_price_is_rejected(self, client, catalog, alice, price):
        resp = await submit(client, alice, catalog, price=price)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BAD_REQUEST"

    @pytest.mark.parametrize("price", ["0.004", "99999999.995", "99999999.999"])
    async def test_price_out_of_range_after_rounding_is_rejected(self, client, catalog, alice, price):
        resp = await submit(client, alice, catalog, price=price)
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "BAD_REQUEST"
        assert [tuple(err["loc"]) for err in error["details"]] == [("body", "price")]

    @pytest.mark.parametrize(
        "price,stored",
        [("0.005", "0.01"), ("0.01", "0.01"), ("99999999.99", "99999999.99"), ("99999999.994", "99999999.99")],
    )
    async def test_price_range_boundaries_are_accepted(self, client, catalog, alice, price, stored):
        resp = await submit(client, alice, catalog, price=price)
        assert resp.status_code == 201, resp.text
        assert resp.json()["data"]["price"] == stored

    async def test_missing_field_lists_validation_details(self, client, catalog, alice):
        body = report_body(catalog)
        del body["market_id"]
        resp = await client.post("/api/v1/price-reports", json=body, headers=alice.headers)
        assert resp.status_code == 400
        locations = [tuple(err["loc"]) for err in resp.json()["error"]["details"]]
        assert ("body", "market_id") in locations


class TestReportScenario:
    async def test_submit_verify_vote(self, client, session_factory, catalog, alice, bob, carol):
        created = await submit(client, alice, catalog)
        report_id = created.json()["data"]["id"]

        verified = await client.post(
            f"/api/v1/price-reports/{report_id}/verify", headers=bob.headers
        )
        assert verified.status_code == 200
        assert verified.json()["data"]["status"] == "verified"
        assert verified.json()["data"]["verified_by"] == bob.id

        vote = await client.post(f"/api/v1/price-reports/{report_id}/vote", headers=carol.headers)
        assert vote.status_code == 200
        assert vote.json()["data"] == {
            "report_id": report_id,
            "helpful_count": 1,
            "has_helpful_vote": True,
        }

        reporter = await fetch_user(session_factory, alice.id)
        assert reporter.reputation == 15 + 2
        assert reporter.verified_report_count == 1
        assert (await fetch_user(session_factory, bob.id)).reputation == 5
        assert (await fetch_user(session_factory, carol.id)).reputation == 0

    async def test_second_verification_conflicts(self, client, catalog, alice, bob, carol):
        report_id = (await submit(client, alice, catalog)).json()["data"]["id"]
        await client.post(f"/api/v1/price-reports/{report_id}/verify", headers=bob.headers)

        resp = await client.post(f"/api/v1/price-reports/{report_id}/verify", headers=carol.headers)
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "CONFLICT"

    async def test_self_verification_is_forbidden(self, client, catalog, alice):
        report_id = (await submit(client, alice, catalog)).json()["data"]["id"]
        resp = await client.post(f"/api/v1/price-reports/{report_id}/verify", headers=alice.headers)
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "FORBIDDEN"

    async def test_verify_unknown_report(self, client, alice):
        resp = await client.post("/api/v1/price-reports/777/verify", headers=alice.headers)
        assert resp.status_code == 404

    async def test_double_vote_counts_once(self, client, session_factory, catalog, alice, bob):
        report_id = (await submit(client, alice, catalog)).json()["data"]["id"]
        await client.post(f"/api/v1/price-reports/{report_id}/vote", headers=bob.headers)
        resp = await client.post(f"/api/v1/price-reports/{report_id}/vote", headers=bob.headers)

        assert resp.json()["data"]["helpful_count"] == 1
        assert (await fetch_user(session_factory, alice.id)).reputation == 2

    async def test_retract_vote(self, client, session_factory, catalog, alice, bob):
        report_id = (await submit(client, alice, catalog)).json()["data"]["id"]
        await client.post(f"/api/v1/price-reports/{report_id}/vote", headers=bob.headers)

        resp = await client.delete(f"/api/v1/price-reports/{report_id}/vote", headers=bob.headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["helpful_count"] == 0
        assert resp.json()["data"]["has_helpful_vote"] is False
        assert (await fetch_user(session_factory, alice.id)).reputation == 0


class TestModeration:
    async def test_regular_user_cannot_reject(self, client, catalog, alice, bob):
        report_id = (await submit(client, alice, catalog)).json()["data"]["id"]
        resp = await client.post(
            f"/api/v1/price-reports/{report_id}/reject",
            json={"reason": "looks wrong"},
            headers=bob.headers,
        )
        assert resp.status_code == 403

    async def test_moderator_rejects_pending_report(self, client, catalog, alice, moderator):
        report_id = (await submit(client, alice, catalog)).json()["data"]["id"]
        resp = await client.post(
            f"/api/v1/price-reports/{report_id}/reject",
            json={"reason": "  Price is per kg, not per tray  "},
            headers=moderator.headers,
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["status"] == "rejected"
        assert data["rejection_reason"] == "Price is per kg, not per tray"

    async def test_blank_reason_is_bad_request(self, client, catalog, alice, moderator):
        report_id = (await submit(client, alice, catalog)).json()["data"]["id"]
        resp = await client.post(
            f"/api/v1/price-reports/{report_id}/reject",
            json={"reason": "   "},
            headers=moderator.headers,
        )
        assert resp.status_code == 400


class TestFeedAndDetail:
    async def test_feed_is_newest_first_with_cursor(self, client, catalog, alice):
        ids = []
        for hours in (6, 5, 4):
            resp = await submit(client, alice, catalog, reported_at=hours_ago(hours).isoformat())
            ids.append(resp.json()["data"]["id"])

        first = (await client.get("/api/v1/price-reports/feed", params={"limit": 2})).json()["data"]
        assert [entry["id"] for entry in first["items"]] == [ids[2], ids[1]]
        assert first["next_cursor"] == ids[1]

        second = (
            await client.get(
                "/api/v1/price-reports/feed", params={"limit": 2, "cursor": first["next_cursor"]}
            )
        ).json()["data"]
        assert [entry["id"] for entry in second["items"]] == [ids[0]]
        assert second["next_cursor"] is None

    async def test_feed_filters_by_region(self, client, catalog, alice, bob):
        await submit(client, alice, catalog)
        await submit(client, bob, catalog, market_id=catalog.other_market_id)

        resp = await client.get(
            "/api/v1/price-reports/feed", params={"region_id": catalog.other_region_id}
        )
        items = resp.json()["data"]["items"]
        assert len(items) == 1
        assert items[0]["market_name"] == "Bayan Baru Market"

    async def test_feed_marks_callers_votes(self, client, catalog, alice, bob):
        report_id = (await submit(client, alice, catalog)).json()["data"]["id"]
        await client.post(f"/api/v1/price-reports/{report_id}/vote", headers=bob.headers)

        mine = (await client.get("/api/v1/price-reports/feed", headers=bob.headers)).json()
        anonymous = (await client.get("/api/v1/price-reports/feed")).json()
        assert mine["data"]["items"][0]["has_helpful_vote"] is True
        assert mine["data"]["items"][0]["helpful_count"] == 1
        assert anonymous["data"]["items"][0]["has_helpful_vote"] is False

    async def test_detail_action_flags(self, client, catalog, alice, bob):
        report_id = (await submit(client, alice, catalog)).json()["data"]["id"]

        as_author = (
            await client.get(f"/api/v1/price-reports/{report_id}", headers=alice.headers)
        ).json()["data"]
        as_other = (
            await client.get(f"/api/v1/price-reports/{report_id}", headers=bob.headers)
        ).json()["data"]
        anonymous = (await client.get(f"/api/v1/price-reports/{report_id}")).json()["data"]

        assert as_author["actions"]["can_verify"] is False
        assert as_other["actions"] == {"can_thumbs_up": True, "can_verify": True, "can_comment": True}
        assert anonymous["actions"] == {"can_thumbs_up": False, "can_verify": False, "can_comment": False}
        assert as_other["region_name"] == "Klang Valley"
        assert as_other["item_name"] == "Eggs (Grade A tray 30)"

    async def test_comment_appears_on_detail(self, client, catalog, alice, bob):
        report_id = (await submit(client, alice, catalog)).json()["data"]["id"]
        created = await client.post(
            f"/api/v1/price-reports/{report_id}/comments",
            json={"message": "Saw the same price this morning"},
            headers=bob.headers,
        )
        assert created.status_code == 201
        assert created.json()["data"]["user_name"] == "Bob"

        detail = (await client.get(f"/api/v1/price-reports/{report_id}")).json()["data"]
        assert [c["message"] for c in detail["comments"]] == ["Saw the same price this morning"]

    async def test_unknown_report_is_not_found(self, client):
        resp = await client.get("/api/v1/price-reports/98765")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"

    async def test_non_positive_id_is_bad_request(self, client):
        resp = await client.get("/api/v1/price-reports/0")
        assert resp.status_code == 400
