"""Gated read routes.

Every route here depends on the bearer gate. Handlers validate their query
string, run one query through the connection provider, and return a result
dict which `enveloped` wraps as `{"ok": true, ...}` (or a 400 on failure).
"""

from fastapi import APIRouter, Depends, Request

from common.auth import require_bearer
from common.db import ConnectionProvider, get_provider
from common.responses import enveloped
from common.validation import check_memory_hash, parse_limit, require_query

from . import db

router = APIRouter(prefix="/read", dependencies=[Depends(require_bearer)])


@router.get("/memory_tiers/by_hash")
@enveloped
async def memory_tier_by_hash(request: Request, provider: ConnectionProvider = Depends(get_provider)):
    """Look up one memory tier entry by its 64-hex `memory_hash`.

    Returns:
        dict: `{"row": {...} | None}`.
    """
    memory_hash = check_memory_hash(require_query(request.query_params, "memory_hash"))
    row = await db.lookup_by_hash(provider, memory_hash)
    return {"row": row}


@router.get("/evidence/by_task")
@enveloped
async def evidence_by_task(request: Request, provider: ConnectionProvider = Depends(get_provider)):
    """List evidence for a task, most recent first.

    Query params:
        task_id: required.
        limit: optional, clamped to 1..200, default 50.

    Returns:
        dict: `{"rows": [...]}`.
    """
    task_id = require_query(request.query_params, "task_id")
    limit = parse_limit(request.query_params.get("limit"))
    rows = await db.list_evidence_by_task(provider, task_id, limit)
    return {"rows": rows}
