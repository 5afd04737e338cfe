"""Integration tests for the Feed API endpoints."""

from fastapi.testclient import TestClient
from feed.channel import get_push_gateway
from feed.item.feed_item import FeedItem
from feed.member.member import Member
from protean import current_domain


def _get_test_client():
    """Build a minimal FastAPI test client with feed routes."""
    from fastapi import FastAPI
    from feed.api import feed_router, member_router

    app = FastAPI()
    app.include_router(feed_router)
    app.include_router(member_router)
    return TestClient(app)


def _register_member(client, member_id, **payload):
    resp = client.post("/members", json={"member_id": member_id, **payload})
    assert resp.status_code == 201
    return resp.json()["member_id"]


# ---------------------------------------------------------------
# Members
# ---------------------------------------------------------------
class TestMembersAPI:
    def test_register_member(self):
        client = _get_test_client()
        resp = client.post("/members", json={"display_name": "Ana", "fcm_tokens": ["a"]})
        assert resp.status_code == 201

        member = current_domain.repository_for(Member).get(resp.json()["member_id"])
        assert member.display_name == "Ana"
        assert member.device_tokens == ["a"]

    def test_register_member_with_legacy_token(self):
        client = _get_test_client()
        member_id = _register_member(client, "m1", fcm_token="legacy")
        assert current_domain.repository_for(Member).get(member_id).device_tokens == ["legacy"]

    def test_register_device_token(self):
        client = _get_test_client()
        _register_member(client, "m1")

        resp = client.post("/members/m1/devices", json={"token": "phone"})

        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert current_domain.repository_for(Member).get("m1").device_tokens == ["phone"]

    def test_register_device_token_unknown_member(self):
        client = _get_test_client()
        resp = client.post("/members/ghost/devices", json={"token": "phone"})
        assert resp.status_code == 404

    def test_register_device_token_rejects_empty_token(self):
        client = _get_test_client()
        _register_member(client, "m1")
        resp = client.post("/members/m1/devices", json={"token": ""})
        assert resp.status_code == 422


# ---------------------------------------------------------------
# Feed items
# ---------------------------------------------------------------
class TestFeedAPI:
    def test_post_feed_item_pushes_to_members(self):
        client = _get_test_client()
        _register_member(client, "u1", fcm_token="author-tok")
        _register_member(client, "u2", fcm_tokens=["tok-2"])

        resp = client.post(
            "/feed",
            json={
                "author_id": "u1",
                "related_user_name": "Ana",
                "feed_type": "activityCompleted",
                "activity_data": {"activity_type": "run", "distance_meters": 5200},
            },
        )

        assert resp.status_code == 201
        item_id = resp.json()["feed_item_id"]
        assert get_push_gateway().delivered_tokens == ["tok-2"]
        assert get_push_gateway().sent_batches[0]["body"] == "Ana completó 5.2 km (run)"
        assert current_domain.repository_for(FeedItem).get(item_id).push_status == "sent"

    def test_rejects_negative_distance(self):
        client = _get_test_client()
        resp = client.post("/feed", json={"author_id": "u1", "activity_data": {"distance_meters": -1}})
        assert resp.status_code == 422

    def test_get_push_outcome(self):
        client = _get_test_client()
        _register_member(client, "u2", fcm_tokens=["good", "bad"])
        get_push_gateway().configure(token_errors={"bad": "messaging/registration-token-not-registered"})
        item_id = client.post("/feed", json={"author_id": "u1"}).json()["feed_item_id"]

        resp = client.get(f"/feed/{item_id}/push")

        assert resp.status_code == 200
        data = resp.json()
        assert data["feed_item_id"] == item_id
        assert data["push_status"] == "sent"
        assert data["push_sent_at"] is not None
        assert data["push_audience_tokens"] == 2
        assert data["push_success_count"] == 1
        assert data["push_failure_count"] == 1
        assert data["push_failure_reasons"] == {"messaging/registration-token-not-registered": 1}
        assert data["push_error"] is None

    def test_get_push_outcome_for_skipped_item(self):
        client = _get_test_client()
        item_id = client.post("/feed", json={"title": "Nobody"}).json()["feed_item_id"]

        data = client.get(f"/feed/{item_id}/push").json()

        assert data["push_status"] == "skipped"
        assert data["push_error"] == "missing userId and tokens"
        assert data["push_sent_at"] is None
        assert data["push_failure_reasons"] == {}

    def test_get_push_outcome_unknown_item(self):
        client = _get_test_client()
        resp = client.get("/feed/nope/push")
        assert resp.status_code == 404

    def test_push_log(self):
        client = _get_test_client()
        _register_member(client, "u2", fcm_tokens=["tok-2"])
        client.post("/feed", json={"author_id": "u1"})
        client.post("/feed", json={"title": "Nobody"})

        resp = client.get("/feed/push-log")
        assert resp.status_code == 200
        assert resp.json()["total"] == 2

        resp = client.get("/feed/push-log", params={"status": "skipped"})
        entries = resp.json()["entries"]
        assert len(entries) == 1
        assert entries[0]["error"] == "missing userId and tokens"
