"""Append-only inserts into `public.memory_tiers` and `public.cc_evidence`.

Each function runs exactly one INSERT ... RETURNING on a connection taken
from the provider for that call alone. The engine runs in autocommit mode, so
the row is committed when the statement succeeds.
"""

import json
from typing import Any

from sqlalchemy import text

from common.db import ConnectionProvider

INSERT_MEMORY_TIER_SQL = text("""
    INSERT INTO public.memory_tiers (memory_hash, content, tier, ttl_days)
    VALUES (:memory_hash, :content, :tier, :ttl_days)
    RETURNING entry_id::text AS entry_id
""")

# ttl_days omitted so the column default applies
INSERT_MEMORY_TIER_DEFAULT_TTL_SQL = text("""
    INSERT INTO public.memory_tiers (memory_hash, content, tier)
    VALUES (:memory_hash, :content, :tier)
    RETURNING entry_id::text AS entry_id
""")

APPEND_EVIDENCE_SQL = text("""
    INSERT INTO public.cc_evidence (task_id, kind, payload)
    VALUES (:task_id, :kind, CAST(:payload AS jsonb))
    RETURNING id::text AS id
""")


async def insert_memory_tier(
    provider: ConnectionProvider,
    memory_hash: str,
    content: str,
    tier: str,
    ttl_days: int | float | None = None,
) -> str:
    """Insert a memory tier entry and return its generated `entry_id`.

    When `ttl_days` is None the column is left out of the INSERT, so the
    table's default is kept instead of being overwritten with NULL.
    """
    params: dict[str, Any] = {"memory_hash": memory_hash, "content": content, "tier": tier}
    if ttl_days is None:
        statement = INSERT_MEMORY_TIER_DEFAULT_TTL_SQL
    else:
        statement = INSERT_MEMORY_TIER_SQL
        params["ttl_days"] = ttl_days

    async with provider.connect() as conn:
        result = await conn.execute(statement, params)
        entry_id = result.scalar_one()
    return entry_id


async def append_evidence(provider: ConnectionProvider, task_id: str, kind: str, payload: Any) -> str:
    """Append one evidence row; `payload` is stored as jsonb. Returns the new `id`."""
    params = {"task_id": task_id, "kind": kind, "payload": json.dumps(payload)}
    async with provider.connect() as conn:
        result = await conn.execute(APPEND_EVIDENCE_SQL, params)
        evidence_id = result.scalar_one()
    return evidence_id
