"""Read-side queries against `public.memory_tiers` and `public.cc_evidence`.

Each function takes one connection from the provider for the duration of a
single SELECT and releases it before returning. Values are always passed as
bound parameters.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.dialects.postgresql import JSONB

from common.db import ConnectionProvider

LOOKUP_BY_HASH_SQL = text("""
    SELECT entry_id::text AS entry_id,
           memory_hash,
           tier,
           ttl_days,
           content
    FROM public.memory_tiers
    WHERE memory_hash = :memory_hash
    LIMIT 1
""")

EVIDENCE_BY_TASK_SQL = text("""
    SELECT id::text AS id,
           task_id,
           kind,
           payload,
           created_at
    FROM public.cc_evidence
    WHERE task_id = :task_id
    ORDER BY created_at DESC
    LIMIT :limit
""").columns(payload=JSONB)


async def lookup_by_hash(provider: ConnectionProvider, memory_hash: str) -> dict[str, Any] | None:
    """Fetch the first memory tier entry with `memory_hash`, or None."""
    async with provider.connect() as conn:
        result = await conn.execute(LOOKUP_BY_HASH_SQL, {"memory_hash": memory_hash})
        row = result.mappings().first()
    return dict(row) if row else None


async def list_evidence_by_task(provider: ConnectionProvider, task_id: str, limit: int) -> list[dict[str, Any]]:
    """Fetch up to `limit` evidence rows for `task_id`, newest first."""
    async with provider.connect() as conn:
        result = await conn.execute(EVIDENCE_BY_TASK_SQL, {"task_id": task_id, "limit": limit})
        rows = result.mappings().all()
    return [dict(r) for r in rows]
