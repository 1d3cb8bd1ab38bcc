"""Shared pytest fixtures.

`FakeProvider` stands in for the Postgres connection provider. It counts
every `connect()`/release, records executed statements, and emulates the two
overlay tables in memory so route tests run without a database.
"""

import itertools
import json
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from services.overlay_reader.app import db as reader_db
from services.overlay_reader.app.main import create_app as create_reader_app
from services.overlay_reader.app.settings import ReaderSettings
from services.overlay_writer.app import db as writer_db
from services.overlay_writer.app.main import create_app as create_writer_app
from services.overlay_writer.app.settings import WriterSettings

READER_TOKEN = "reader-secret"
WRITER_TOKEN = "writer-secret"
DEFAULT_TTL_DAYS = 30
EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeResult:
    def __init__(self, rows):
        self._rows = rows

    def mappings(self):
        return self

    def first(self):
        return self._rows[0] if self._rows else None

    def all(self):
        return list(self._rows)

    def scalar_one(self):
        assert len(self._rows) == 1
        return next(iter(self._rows[0].values()))


class FakeStore:
    """In-memory `memory_tiers` + `cc_evidence`."""

    def __init__(self):
        self.memory_tiers = []
        self.evidence = []
        self.statements = []
        self.fail_with = None
        self._clock = itertools.count(1)

    def execute(self, statement, params):
        self.statements.append((statement, dict(params)))
        if self.fail_with is not None:
            raise self.fail_with

        if statement is reader_db.LOOKUP_BY_HASH_SQL:
            rows = [r for r in self.memory_tiers if r["memory_hash"] == params["memory_hash"]]
            return FakeResult([dict(r) for r in rows[:1]])

        if statement is reader_db.EVIDENCE_BY_TASK_SQL:
            rows = [r for r in self.evidence if r["task_id"] == params["task_id"]]
            rows.sort(key=lambda r: r["created_at"], reverse=True)
            return FakeResult([dict(r) for r in rows[: params["limit"]]])

        if statement is writer_db.INSERT_MEMORY_TIER_SQL or statement is writer_db.INSERT_MEMORY_TIER_DEFAULT_TTL_SQL:
            row = {
                "entry_id": str(uuid.uuid4()),
                "memory_hash": params["memory_hash"],
                "tier": params["tier"],
                "ttl_days": params.get("ttl_days", DEFAULT_TTL_DAYS),
                "content": params["content"],
            }
            self.memory_tiers.append(row)
            return FakeResult([{"entry_id": row["entry_id"]}])

        if statement is writer_db.APPEND_EVIDENCE_SQL:
            row = {
                "id": str(uuid.uuid4()),
                "task_id": params["task_id"],
                "kind": params["kind"],
                "payload": json.loads(params["payload"]),
                "created_at": EPOCH + timedelta(seconds=next(self._clock)),
            }
            self.evidence.append(row)
            return FakeResult([{"id": row["id"]}])

        raise AssertionError(f"unexpected statement: {statement}")


class FakeConnection:
    def __init__(self, store):
        self.store = store

    async def execute(self, statement, params=None):
        return self.store.execute(statement, params or {})


class FakeProvider:
    def __init__(self, store):
        self.store = store
        self.connects = 0
        self.releases = 0
        self.disposed = False

    @asynccontextmanager
    async def connect(self):
        self.connects += 1
        try:
            yield FakeConnection(self.store)
        finally:
            self.releases += 1

    async def dispose(self):
        self.disposed = True


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def provider(store):
    return FakeProvider(store)


@pytest.fixture
def reader_settings():
    settings = ReaderSettings(_env_file=None, token=READER_TOKEN, db_url="postgresql://u:p@localhost/overlay")
    settings.env_source = "/tmp/overlay-reader.env"
    return settings


@pytest.fixture
def writer_settings():
    settings = WriterSettings(_env_file=None, token=WRITER_TOKEN, db_url="postgresql://u:p@localhost/overlay")
    settings.env_source = "/tmp/overlay-writer.env"
    return settings


@pytest.fixture
def reader_client(reader_settings, provider):
    with TestClient(create_reader_app(reader_settings, provider)) as client:
        yield client


@pytest.fixture
def writer_client(writer_settings, provider):
    with TestClient(create_writer_app(writer_settings, provider)) as client:
        yield client


@pytest.fixture
def reader_auth():
    return {"Authorization": f"Bearer {READER_TOKEN}"}


@pytest.fixture
def writer_auth():
    return {"Authorization": f"Bearer {WRITER_TOKEN}"}
