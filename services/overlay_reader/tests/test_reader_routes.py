"""Route tests for the overlay reader service."""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import OperationalError

HASH = "ab" * 32


def test_health_needs_no_credentials(reader_client, provider):
    resp = reader_client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["service"] == "overlay-reader"
    assert body["env_source"] == "/tmp/overlay-reader.env"
    assert body["bind"] == "127.0.0.1"
    assert body["port"] == 18795
    assert isinstance(body["pid"], int)
    assert provider.connects == 0


def test_missing_authorization_is_401(reader_client, provider):
    resp = reader_client.get("/read/memory_tiers/by_hash", params={"memory_hash": HASH})
    assert resp.status_code == 401
    assert resp.json() == {"ok": False, "error": "unauthorized"}
    assert provider.connects == 0


def test_wrong_scheme_is_401(reader_client, provider):
    resp = reader_client.get(
        "/read/evidence/by_task",
        params={"task_id": "t1"},
        headers={"Authorization": "Basic reader-secret"},
    )
    assert resp.status_code == 401
    assert provider.connects == 0


def test_lowercase_scheme_is_401(reader_client, provider):
    resp = reader_client.get(
        "/read/evidence/by_task",
        params={"task_id": "t1"},
        headers={"Authorization": "bearer reader-secret"},
    )
    assert resp.status_code == 401


def test_wrong_token_is_401_even_when_request_is_invalid(reader_client, provider):
    resp = reader_client.get(
        "/read/memory_tiers/by_hash",
        params={"memory_hash": "nope"},
        headers={"Authorization": "Bearer reader-secre"},
    )
    assert resp.status_code == 401
    assert resp.json()["error"] == "unauthorized"
    assert provider.connects == 0


def test_lookup_requires_memory_hash(reader_client, reader_auth, provider):
    resp = reader_client.get("/read/memory_tiers/by_hash", headers=reader_auth)
    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "Missing required query param: memory_hash"}
    assert provider.connects == 0


def test_lookup_rejects_bad_hash(reader_client, reader_auth, provider):
    for bad in ("a" * 63, "a" * 65, "g" * 64, "   "):
        resp = reader_client.get("/read/memory_tiers/by_hash", params={"memory_hash": bad}, headers=reader_auth)
        assert resp.status_code == 400
        assert resp.json()["ok"] is False
    assert provider.connects == 0


def test_lookup_returns_null_row_when_absent(reader_client, reader_auth, provider):
    resp = reader_client.get("/read/memory_tiers/by_hash", params={"memory_hash": HASH}, headers=reader_auth)
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "row": None}
    assert provider.connects == 1
    assert provider.releases == 1


def test_lookup_trims_and_accepts_uppercase(reader_client, reader_auth, store):
    store.memory_tiers.append(
        {"entry_id": "1", "memory_hash": "AB" * 32, "tier": "W", "ttl_days": 7, "content": "hello"}
    )
    resp = reader_client.get(
        "/read/memory_tiers/by_hash",
        params={"memory_hash": "  " + "AB" * 32 + " "},
        headers=reader_auth,
    )
    assert resp.status_code == 200
    assert resp.json()["row"] == {
        "entry_id": "1",
        "memory_hash": "AB" * 32,
        "tier": "W",
        "ttl_days": 7,
        "content": "hello",
    }


def _evidence(store, task_id, n):
    for i in range(n):
        store.evidence.append(
            {
                "id": str(i),
                "task_id": task_id,
                "kind": "note",
                "payload": {"i": i},
                "created_at": datetime(2026, 1, 1, 0, 0, i, tzinfo=timezone.utc),
            }
        )


def test_evidence_default_limit_and_order(reader_client, reader_auth, store):
    _evidence(store, "t1", 60)
    _evidence(store, "t2", 3)
    resp = reader_client.get("/read/evidence/by_task", params={"task_id": "t1"}, headers=reader_auth)
    assert resp.status_code == 200
    rows = resp.json()["rows"]
    assert len(rows) == 50
    assert rows[0]["id"] == "59"
    assert rows[0]["created_at"].startswith("2026-01-01T00:00:59")
    assert all(r["task_id"] == "t1" for r in rows)
    _, params = store.statements[-1]
    assert params == {"task_id": "t1", "limit": 50}


def test_evidence_limit_is_clamped(reader_client, reader_auth, store):
    for raw, effective in (("0", 1), ("-5", 1), ("7", 7), ("500", 200)):
        resp = reader_client.get(
            "/read/evidence/by_task",
            params={"task_id": "t1", "limit": raw},
            headers=reader_auth,
        )
        assert resp.status_code == 200
        _, params = store.statements[-1]
        assert params["limit"] == effective


def test_evidence_non_numeric_limit_is_rejected(reader_client, reader_auth, provider):
    resp = reader_client.get(
        "/read/evidence/by_task",
        params={"task_id": "t1", "limit": "lots"},
        headers=reader_auth,
    )
    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "limit must be a number"}
    assert provider.connects == 0


def test_evidence_requires_task_id(reader_client, reader_auth, provider):
    resp = reader_client.get("/read/evidence/by_task", params={"task_id": " "}, headers=reader_auth)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Missing required query param: task_id"
    assert provider.connects == 0


def test_store_failure_is_400_with_driver_message(reader_client, reader_auth, store, provider):
    store.fail_with = OperationalError("SELECT ...", {}, Exception("connection refused"))
    resp = reader_client.get("/read/evidence/by_task", params={"task_id": "t1"}, headers=reader_auth)
    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "connection refused"}
    assert provider.releases == provider.connects == 1


def test_app_shutdown_disposes_provider(reader_settings, provider):
    from fastapi.testclient import TestClient

    from services.overlay_reader.app.main import create_app

    with TestClient(create_app(reader_settings, provider)):
        assert provider.disposed is False
    assert provider.disposed is True


def test_evidence_blank_limit_reads_as_zero(reader_client, reader_auth, store):
    resp = reader_client.get("/read/evidence/by_task?task_id=t1&limit=", headers=reader_auth)
    assert resp.status_code == 200
    _, params = store.statements[-1]
    assert params["limit"] == 1


def test_failures_are_logged_with_request_path(reader_client, reader_auth, caplog):
    with caplog.at_level(logging.WARNING, logger="common.responses"):
        reader_client.get("/read/memory_tiers/by_hash", params={"memory_hash": "zz"}, headers=reader_auth)
    assert "/read/memory_tiers/by_hash failed: memory_hash must be 64 hex chars" in caplog.text
