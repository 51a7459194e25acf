# tests/test_admin_and_health.py
"""Tests for POST /api/admin/seed and the health endpoints."""

from miles.models.event import Event
from miles.services.live_stream import registry

ADMIN_TOKEN = "admin-token"


class TestSeed:
    """POST /api/admin/seed: bearer check, sample rows and broadcast."""

    def test_requires_bearer_token(self, client, db):
        assert client.post("/api/admin/seed").status_code == 401
        assert client.post("/api/admin/seed", headers={"Authorization": "Bearer wrong"}).status_code == 401
        assert client.post("/api/admin/seed", headers={"Authorization": ADMIN_TOKEN}).status_code == 401
        assert db.query(Event).count() == 0

    def test_unset_token_always_401(self, client, configured, monkeypatch):
        monkeypatch.setattr(configured, "ADMIN_TOKEN", "")
        assert client.post("/api/admin/seed", headers={"Authorization": "Bearer "}).status_code == 401

    def test_inserts_and_broadcasts_samples(self, client, db):
        sub = registry.register()
        resp = client.post("/api/admin/seed", headers={"Authorization": f"Bearer {ADMIN_TOKEN}"})

        assert resp.status_code == 200
        assert resp.json() == {"inserted": 2}
        assert {e.dedupe_key for e in db.query(Event).all()} == {"sample-1", "sample-2"}
        assert sub.queue.qsize() == 2

    def test_reseeding_is_idempotent(self, client, db):
        headers = {"Authorization": f"Bearer {ADMIN_TOKEN}"}
        client.post("/api/admin/seed", headers=headers)
        client.post("/api/admin/seed", headers=headers)
        assert db.query(Event).count() == 2

    def test_samples_listed_newest_first(self, client):
        client.post("/api/admin/seed", headers={"Authorization": f"Bearer {ADMIN_TOKEN}"})
        items = client.get("/api/events").json()["items"]
        assert [i["alertType"] for i in items] == ["MV Motion Recap", "MX Offline"]
        assert items[0]["imageUrl"] == "https://placehold.co/160x90/png"


class TestHealth:
    """Liveness and database health endpoints."""

    def test_healthz(self, client):
        resp = client.get("/healthz")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}

    def test_detailed_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "ok"
        assert body["database"] == "ok"
        assert body["streamClients"] == 0
