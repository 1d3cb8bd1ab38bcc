"""Gated write routes.

Bodies are JSON objects. Each handler checks its required fields, shapes the
values, and performs a single INSERT. Results are wrapped by `enveloped`.
"""

from fastapi import APIRouter, Depends, Request

from common.auth import require_bearer
from common.db import ConnectionProvider, get_provider
from common.responses import enveloped
from common.validation import (
    check_memory_hash,
    check_tier,
    coerce_ttl_days,
    read_json_object,
    require_fields,
)

from . import db

router = APIRouter(prefix="/write", dependencies=[Depends(require_bearer)])


@router.post("/memory_tiers/insert")
@enveloped
async def insert_memory_tier(request: Request, provider: ConnectionProvider = Depends(get_provider)):
    """Insert a memory tier entry.

    Body:
        memory_hash: 64 hex chars.
        content: text payload.
        tier: one of Q, W, S.
        ttl_days: optional; non-numeric values fall back to the column default.

    Returns:
        dict: `{"entry_id": "<id>"}`.
    """
    body = await read_json_object(request)
    require_fields(body, ["memory_hash", "content", "tier"])

    memory_hash = check_memory_hash(str(body["memory_hash"]))
    tier = check_tier(str(body["tier"]))
    content = str(body["content"])
    ttl_days = coerce_ttl_days(body.get("ttl_days"))

    entry_id = await db.insert_memory_tier(provider, memory_hash, content, tier, ttl_days)
    return {"entry_id": entry_id}


@router.post("/evidence/append")
@enveloped
async def append_evidence(request: Request, provider: ConnectionProvider = Depends(get_provider)):
    """Append an evidence record for a task.

    Body:
        task_id, kind: non-empty strings.
        payload: any JSON value except null.

    Returns:
        dict: `{"id": "<id>"}`.
    """
    body = await read_json_object(request)
    require_fields(body, ["task_id", "kind", "payload"])

    evidence_id = await db.append_evidence(
        provider,
        str(body["task_id"]),
        str(body["kind"]),
        body["payload"],
    )
    return {"id": evidence_id}
