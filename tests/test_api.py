import asyncio

import pytest
from fastapi.testclient import TestClient

from app.core.app import create_app
from app.core.config import Settings
from app.services.telemetry.service import TelemetryService
from app.services.telemetry.store import InMemorySessionStore

CANDIDATES = [
    {"id": f"{category}-{i}", "category": category, "tags": ["nature"], "distanceKm": 0.5 + i, "price": "free"}
    for category in ("park", "museum", "library", "book", "event")
    for i in range(3)
]


class SlowStore(InMemorySessionStore):
    async def query_by_session(self, session_id):
        await asyncio.sleep(1.0)
        return []


@pytest.fixture
def config() -> Settings:
    return Settings(APP_ENV="test", TELEMETRY_STORE_BACKEND="memory", RANKING_SEED=5)


@pytest.fixture
def client(config):
    with TestClient(create_app(config)) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["telemetry_store"] == "InMemorySessionStore"


def test_capture_and_read_session(client):
    events = [
        {"name": "view_item", "payload": {"id": "ueno", "category": "park", "tags": ["animals"], "distanceKm": 1.2}},
        {"name": "share_tapped", "payload": {"channel": "line"}},
    ]
    response = client.post("/telemetry/events", json={"events": events})
    assert response.status_code == 202
    assert response.json() == {"accepted": 2}

    session = client.get("/telemetry/session").json()
    assert session["session_id"].startswith("session_")
    assert [s["event"]["name"] for s in session["signals"]] == ["view_item", "share_tapped"]
    assert session["signals"][0]["event"]["payload"]["distanceKm"] == 1.2

    assert response.headers["X-Session-Id"] == session["session_id"]

    stats = client.get("/telemetry/session/stats").json()
    assert stats["event_count"] == 2
    assert stats["event_counts"] == {"view_item": 1, "share_tapped": 1}


def test_sessions_are_isolated_between_clients(client):
    private = {"name": "view_item", "payload": {"id": "alice-private", "category": "museum", "tags": ["art"]}}
    alice = client.post("/telemetry/events", json={"events": [private]}).headers["X-Session-Id"]

    client.cookies.clear()
    bob_view = client.get("/telemetry/session").json()
    bob = bob_view["session_id"]
    assert bob != alice
    assert bob_view["signals"] == []
    assert client.get("/profile").json()["confidence"] == pytest.approx(0.1)

    assert client.delete("/telemetry/session", headers={"X-Session-Id": bob}).status_code == 204

    alice_view = client.get("/telemetry/session", headers={"X-Session-Id": alice}).json()
    assert alice_view["session_id"] == alice
    assert [s["event"]["payload"]["id"] for s in alice_view["signals"]] == ["alice-private"]


def test_malformed_session_id_is_replaced(client):
    response = client.get("/telemetry/session", headers={"X-Session-Id": "../../admin"})
    issued = response.json()["session_id"]
    assert issued.startswith("session_")
    assert response.headers["X-Session-Id"] == issued
    assert response.cookies["session_id"] == issued


def test_invalid_event_is_rejected(client):
    response = client.post("/telemetry/events", json={"events": [{"name": "view_item", "payload": {"dwell_ms": -1}}]})
    assert response.status_code == 422


def test_clear_session(client):
    client.post("/telemetry/events", json={"events": [{"name": "click_cta", "payload": {"id": "x"}}]})
    before = client.get("/telemetry/session").json()

    cleared = client.delete("/telemetry/session")
    assert cleared.status_code == 204
    assert cleared.headers["X-Session-Id"] != before["session_id"]

    after = client.get("/telemetry/session").json()
    assert after["session_id"] != before["session_id"]
    assert after["signals"] == []


def test_profile_for_empty_session_is_cold_start(client):
    profile = client.get("/profile").json()
    assert profile["confidence"] == pytest.approx(0.1)
    assert profile["cost_preference"] == "free"


def test_profile_reflects_captured_views(client):
    events = [
        {"name": "view_item", "payload": {"category": "park", "tags": ["park"], "distanceKm": 1.0, "dwell_ms": 8000}}
        for _ in range(6)
    ]
    client.post("/telemetry/events", json={"events": events})

    profile = client.get("/profile").json()
    assert profile["category_weights"]["park"] == pytest.approx(1.0)
    assert profile["distance_km_tolerance"] == 1.0


def test_recommendations(client):
    response = client.post(
        "/recommendations",
        json={"candidates": CANDIDATES, "context": {"hour": 10, "weather": "sunny"}, "seed": 3},
    )
    assert response.status_code == 200

    ranked = response.json()
    assert 0 < len(ranked) <= 10
    assert all(len(item["why"]) <= 3 for item in ranked)
    assert all("distanceKm" in item for item in ranked)
    categories = [item["category"] for item in ranked]
    assert all(categories.count(category) <= 2 for category in categories)


def test_seeded_recommendations_are_reproducible(client):
    body = {"candidates": CANDIDATES, "context": {"hour": 15}, "seed": 42, "limit": 6}
    first = client.post("/recommendations", json=body).json()
    second = client.post("/recommendations", json=body).json()

    assert len(first) == 6
    assert [item["id"] for item in first] == [item["id"] for item in second]


def test_recommendations_with_explicit_profile(client):
    body = {
        "candidates": CANDIDATES,
        "context": {"hour": 20, "mode": "family"},
        "profile": {"category_weights": {"museum": 1.0}, "confidence": 0.9},
        "seed": 1,
    }
    ranked = client.post("/recommendations", json=body).json()
    assert ranked[0]["category"] == "museum"


def test_profile_with_confidence_below_floor_is_rejected(client):
    body = {"candidates": CANDIDATES, "context": {"hour": 10}, "profile": {"confidence": 0.0}}
    assert client.post("/recommendations", json=body).status_code == 422


def test_empty_candidates(client):
    response = client.post("/recommendations", json={"candidates": [], "context": {"hour": 10}})
    assert response.status_code == 200
    assert response.json() == []


def test_slow_requests_time_out():
    config = Settings(APP_ENV="test", REQUEST_TIMEOUT_SECONDS=0.05)
    telemetry = TelemetryService(SlowStore())

    with TestClient(create_app(config, telemetry=telemetry)) as client:
        response = client.get("/telemetry/session")

    assert response.status_code == 504
