"""End-to-end behaviour of the /api/patterns endpoints against SQLite."""

import uuid

from fastapi.testclient import TestClient
from sqlalchemy import func, select

from pattern_service.api.main import create_app
from pattern_service.core.state import DatabaseState
from pattern_service.db.connection import build_pool_config, create_pool
from pattern_service.db.schema import patterns


def _count_rows(engine) -> int:
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(patterns)).scalar_one()


def test_create_then_list_orders_by_timestamp_desc(client: TestClient):
    first = client.post("/api/patterns", json={"params": {"a": 1}, "timestamp": 1000})
    second = client.post("/api/patterns", json={"params": {"b": 2}, "timestamp": 2000})

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["id"] != second.json()["id"]
    assert first.json()["params"] == {"a": 1}
    assert first.json()["timestamp"] == 1000

    listed = client.get("/api/patterns")
    assert listed.status_code == 200
    body = listed.json()
    assert [p["timestamp"] for p in body] == [2000, 1000]
    assert body[0]["params"] == {"b": 2}
    assert body[1]["params"] == {"a": 1}
    assert set(body[0]) == {"id", "params", "timestamp"}


def test_created_ids_are_fresh_uuids(client: TestClient):
    ids = set()
    for i in range(5):
        resp = client.post("/api/patterns", json={"params": {"i": i}, "timestamp": i})
        ids.add(resp.json()["id"])
    assert len(ids) == 5
    for value in ids:
        uuid.UUID(value)

    listed = client.get("/api/patterns").json()
    assert {p["id"] for p in listed} == ids


def test_list_is_non_increasing_for_unsorted_inserts(client: TestClient):
    for ts in [50, 7, 900, 7, 300, 1]:
        client.post("/api/patterns", json={"params": {"ts": ts}, "timestamp": ts})

    stamps = [p["timestamp"] for p in client.get("/api/patterns").json()]
    assert len(stamps) == 6
    assert all(a >= b for a, b in zip(stamps, stamps[1:]))


def test_params_may_be_any_json_value(client: TestClient):
    payload = {"params": [1, "two", {"three": [3]}], "timestamp": 42}
    resp = client.post("/api/patterns", json=payload)
    assert resp.status_code == 200
    assert client.get("/api/patterns").json()[0]["params"] == [1, "two", {"three": [3]}]


def test_missing_fields_are_rejected_without_creating_rows(client: TestClient, engine):
    for body in ({"params": {"a": 1}}, {"timestamp": 1000}, {}, {"params": None, "timestamp": 1}):
        resp = client.post("/api/patterns", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing params or timestamp"}

    assert client.get("/api/patterns").json() == []
    assert _count_rows(engine) == 0


def test_post_without_body_is_missing_fields(client: TestClient):
    resp = client.post("/api/patterns")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing params or timestamp"}


def test_non_object_body_is_rejected(client: TestClient):
    resp = client.post("/api/patterns", json=[1, 2, 3])
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid request body"}


def test_delete_existing_pattern(client: TestClient):
    keep = client.post("/api/patterns", json={"params": {"k": 1}, "timestamp": 1}).json()
    gone = client.post("/api/patterns", json={"params": {"g": 1}, "timestamp": 2}).json()

    resp = client.delete(f"/api/patterns/{gone['id']}")
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    remaining = [p["id"] for p in client.get("/api/patterns").json()]
    assert remaining == [keep["id"]]


def test_delete_unknown_pattern_is_404(client: TestClient):
    created = client.post("/api/patterns", json={"params": {"a": 1}, "timestamp": 5}).json()

    resp = client.delete(f"/api/patterns/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Pattern not found"}
    assert [p["id"] for p in client.get("/api/patterns").json()] == [created["id"]]


def test_delete_twice_is_404_the_second_time(client: TestClient):
    created = client.post("/api/patterns", json={"params": {"a": 1}, "timestamp": 5}).json()
    assert client.delete(f"/api/patterns/{created['id']}").status_code == 200
    assert client.delete(f"/api/patterns/{created['id']}").status_code == 404


def test_delete_all(client: TestClient):
    for i in range(3):
        client.post("/api/patterns", json={"params": {"i": i}, "timestamp": i})

    resp = client.delete("/api/patterns")
    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert client.get("/api/patterns").json() == []

    # Clearing an empty table still succeeds
    assert client.delete("/api/patterns").status_code == 200


def test_database_errors_become_generic_500(test_settings, tmp_path):
    # Engine is ready but the schema was never created, so every statement fails
    bare = create_pool(build_pool_config(f"sqlite:///{tmp_path / 'bare.db'}", test_settings))
    state = DatabaseState()
    state.mark_ready(bare)
    with TestClient(create_app(test_settings, state=state)) as c:
        listed = c.get("/api/patterns")
        saved = c.post("/api/patterns", json={"params": {"a": 1}, "timestamp": 1})
        deleted = c.delete("/api/patterns/abc")
        cleared = c.delete("/api/patterns")

    assert listed.status_code == 500
    assert listed.json() == {"error": "Failed to fetch patterns"}
    assert saved.status_code == 500
    assert saved.json() == {"error": "Failed to save pattern"}
    assert deleted.status_code == 500
    assert deleted.json() == {"error": "Failed to delete pattern"}
    assert cleared.status_code == 500
    assert cleared.json() == {"error": "Failed to clear patterns"}


def test_oversized_body_is_rejected_with_413(client: TestClient, engine):
    blob = "x" * (11 * 1024 * 1024)
    resp = client.post("/api/patterns", json={"params": {"blob": blob}, "timestamp": 1})

    assert resp.status_code == 413
    assert resp.json() == {"error": "Request body too large"}
    assert _count_rows(engine) == 0


def test_chunked_body_over_limit_is_rejected_while_reading(test_settings, ready_state, engine):
    settings = test_settings.model_copy(update={"MAX_BODY_BYTES": 64})
    payload = b'{"params": {"blob": "' + b"x" * 200 + b'"}, "timestamp": 1}'

    with TestClient(create_app(settings, state=ready_state)) as c:
        # An iterator body is sent chunked, without Content-Length
        resp = c.post(
            "/api/patterns",
            content=iter([payload[:40], payload[40:]]),
            headers={"content-type": "application/json"},
        )
        small = c.post("/api/patterns", json={"params": {}, "timestamp": 2})

    assert resp.status_code == 413
    assert resp.json() == {"error": "Request body too large"}
    assert small.status_code == 200
    assert _count_rows(engine) == 1
