from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from farmfence import models
from farmfence.db import Base, make_session_factory
from farmfence.deps import get_service
from farmfence.main import app
from farmfence.service import FarmFenceService


UTC = timezone.utc
SQUARE = [[0, 0], [10, 0], [10, 10], [0, 10]]


def headers(token: str = "U1", role: str = "farmer") -> dict:
    return {"X-User-Token": token, "X-User-Role": role}


@pytest.fixture
def api_client():
    """FastAPI TestClient wired to an isolated in-memory SQLite DB."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = make_session_factory(engine)
    with TestingSessionLocal() as db:
        db.add_all([
            models.Farmer(user_token="U1", farmer_name="Ana", developer_token="D1"),
            models.Farmer(user_token="U2", farmer_name="Bo"),
            models.Developer(user_token="D1", developer_name="Acme"),
        ])
        db.commit()

    service = FarmFenceService(TestingSessionLocal, clock=lambda: datetime(2025, 11, 6, 10, 0, tzinfo=UTC))
    app.dependency_overrides[get_service] = lambda: service

    with TestClient(app) as client:
        yield client, TestingSessionLocal

    app.dependency_overrides.clear()


def create_farm(client, name=None, hdrs=None) -> dict:
    resp = client.post("/farms", json={"farm_name": name}, headers=hdrs or headers())
    assert resp.status_code == 200, resp.json()
    return resp.json()


def test_missing_identity_is_rejected(api_client):
    client, _ = api_client
    assert client.get("/farms").status_code == 401
    assert client.get("/farms", headers={"X-User-Token": "U1", "X-User-Role": "admin"}).status_code == 400


def test_list_farms_empty(api_client):
    client, _ = api_client
    resp = client.get("/farms", headers=headers())
    assert resp.status_code == 200
    assert resp.json() == {"farms": []}


def test_create_farm_defaults_and_duplicate_suggestion(api_client):
    client, _ = api_client
    assert create_farm(client)["farm_name"] == "farm1"
    assert create_farm(client, "")["farm_name"] == "farm2"

    resp = client.post("/farms", json={"farm_name": "farm1"}, headers=headers())
    assert resp.status_code == 409
    assert resp.json() == {
        "error": "Name already exists",
        "duplicate": True,
        "originalName": "farm1",
        "suggestedName": "farm101",
    }

    resp = client.post("/farms", json={"farm_name": "farm1", "allow_rename": True}, headers=headers())
    assert resp.json()["farm_name"] == "farm101"
    listed = client.get("/farms", headers=headers()).json()["farms"]
    assert sorted(f["farm_name"] for f in listed) == ["farm1", "farm101", "farm2"]


def test_rename_and_gps_update(api_client):
    client, _ = api_client
    farm = create_farm(client, "Home")

    resp = client.put(f"/farms/{farm['farm_token']}/name", json={"name": "  Ridge  "}, headers=headers())
    assert resp.status_code == 200
    assert resp.json()["farm_name"] == "Ridge"

    assert client.put(f"/farms/{farm['farm_token']}/name", json={"name": " "}, headers=headers()).status_code == 400
    assert client.put(f"/farms/{farm['farm_token']}/name", json={"name": "X"}, headers=headers("U2")).status_code == 404

    resp = client.put(f"/farms/{farm['farm_token']}/gps", json={"gps": "41.3,19.8"}, headers=headers())
    assert resp.json()["gps"] == "41.3,19.8"
    assert client.put("/farms/missing/gps", json={"gps": "0,0"}, headers=headers()).status_code == 404


def test_fence_lifecycle_over_http(api_client):
    client, session_factory = api_client
    farm = create_farm(client)

    resp = client.post("/farms/fences", json={"nodes": SQUARE[:2]}, headers=headers())
    assert resp.status_code == 400
    assert "at least 3" in resp.json()["error"]

    first = client.post(
        "/farms/fences", json={"nodes": SQUARE, "farm_token": farm["farm_token"]}, headers=headers()
    ).json()
    assert first["fence_name"] == "fence1"
    assert first["area_size"] == pytest.approx(100.0)
    assert first["is_used"] is True

    second = client.post(
        "/farms/fences",
        json={"fence_name": "Paddock", "nodes": [{"lat": 0, "lng": 0}, {"lat": 0, "lng": 2}, {"lat": 2, "lng": 2}],
              "farm_token": farm["farm_token"]},
        headers=headers("D1", "developer"),
    ).json()
    assert second["owner_token"] == "U1"
    assert second["area_size"] == pytest.approx(2.0)

    fences = {f["fence_name"]: f["is_used"] for f in client.get("/farms/fences", headers=headers()).json()["fences"]}
    assert fences == {"fence1": False, "Paddock": True}

    resp = client.post(
        "/farms/fences/select",
        json={"fence_token": first["fence_token"], "farm_token": farm["farm_token"]},
        headers=headers(),
    )
    assert resp.status_code == 200
    assert resp.json()["fence"]["is_used"] is True

    assert client.post("/farms/fences/select", json={}, headers=headers()).status_code == 400
    assert client.post(
        "/farms/fences/select", json={"fence_token": first["fence_token"]}, headers=headers("U2")
    ).status_code == 404

    resp = client.put(f"/farms/fences/{second['fence_token']}/name", json={"name": "fence1"}, headers=headers())
    assert resp.status_code == 409
    assert resp.json()["suggestedName"] == "fence101"

    assert client.delete(f"/farms/fences/{second['fence_token']}", headers=headers()).status_code == 200
    assert client.delete(f"/farms/fences/{second['fence_token']}", headers=headers()).status_code == 404
    with session_factory() as db:
        assert db.get(models.Farm, farm["farm_token"]).fence_count == 1


def test_developer_must_attach_fence_to_farm(api_client):
    client, _ = api_client
    resp = client.post("/farms/fences", json={"nodes": SQUARE}, headers=headers("D1", "developer"))
    assert resp.status_code == 400


def test_select_farms(api_client):
    client, _ = api_client
    a = create_farm(client)
    b = create_farm(client)

    resp = client.post("/farms/select", json={"select_all": True}, headers=headers())
    assert resp.json()["selected"] == sorted([a["farm_token"], b["farm_token"]])

    resp = client.post("/farms/select", json={"farm_token": a["farm_token"]}, headers=headers())
    assert resp.json() == {"success": True, "selected": [a["farm_token"]]}


def test_delete_farm_with_and_without_transfer(api_client):
    client, session_factory = api_client
    doomed = create_farm(client)
    keeper = create_farm(client)
    foreign = create_farm(client, hdrs=headers("U2"))
    with session_factory() as db:
        db.add_all([models.Cow(cow_token=f"c{i}", owner_token="U1", farm_token=doomed["farm_token"]) for i in range(3)])
        db.commit()

    resp = client.request(
        "DELETE", f"/farms/{doomed['farm_token']}",
        json={"transfer_to_farm_token": foreign["farm_token"]}, headers=headers(),
    )
    assert resp.status_code == 409

    resp = client.request(
        "DELETE", f"/farms/{doomed['farm_token']}",
        json={"transfer_to_farm_token": keeper["farm_token"]}, headers=headers(),
    )
    assert resp.status_code == 200
    assert resp.json() == {"farm_token": doomed["farm_token"], "cows_transferred": True, "cows_moved": 3}

    resp = client.delete(f"/farms/{keeper['farm_token']}", headers=headers())
    assert resp.json()["cows_moved"] == 3
    with session_factory() as db:
        assert db.query(models.Cow).filter(models.Cow.farm_token.isnot(None)).count() == 0
        assert db.get(models.Farmer, "U1").total_farms == 0


def test_repair_endpoint(api_client):
    client, session_factory = api_client
    farm = create_farm(client)
    fence = client.post(
        "/farms/fences", json={"nodes": SQUARE, "farm_token": farm["farm_token"]}, headers=headers()
    ).json()
    with session_factory() as db:
        db.get(models.Fence, fence["fence_token"]).is_used = False
        db.commit()

    assert client.post("/farms/fences/repair").json() == {"activated": 1, "developer_links": 0}
