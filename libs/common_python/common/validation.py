"""Request validation helpers.

Validators raise `RequestRejected` with a message naming the offending field.
Nothing here touches the database; a rejected request never reaches it.
"""

import json
import math
import re
from typing import Any, Iterable, Mapping

MEMORY_HASH_RE = re.compile(r"[a-fA-F0-9]{64}")
TIERS = ("Q", "W", "S")

DEFAULT_LIMIT = 50
MIN_LIMIT = 1
MAX_LIMIT = 200


class RequestRejected(ValueError):
    """A request parameter is missing or malformed."""


def is_memory_hash(value: str) -> bool:
    """True for exactly 64 hex characters, any case."""
    return MEMORY_HASH_RE.fullmatch(value) is not None


def require_query(params: Mapping[str, str], name: str) -> str:
    """Return the trimmed query parameter `name`, rejecting absent or blank values."""
    value = params.get(name)
    if value is None or str(value).strip() == "":
        raise RequestRejected(f"Missing required query param: {name}")
    return str(value).strip()


def require_fields(body: Mapping[str, Any], fields: Iterable[str]) -> None:
    """Reject when any of `fields` is absent, null, or an empty string.

    Falsy JSON values such as `0` and `false` count as present.
    """
    for field in fields:
        value = body.get(field)
        if value is None or (isinstance(value, str) and value == ""):
            raise RequestRejected(f"Missing required field: {field}")


def check_memory_hash(value: str) -> str:
    if not is_memory_hash(value):
        raise RequestRejected("memory_hash must be 64 hex chars")
    return value


def check_tier(value: str) -> str:
    if value not in TIERS:
        raise RequestRejected("tier must be one of Q, W, S")
    return value


def _to_number(value: Any) -> float:
    """Coerce a JSON/query value to a float, NaN when it is not numeric.

    Blank strings count as 0.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def parse_limit(raw: str | None) -> int:
    """Effective row limit for evidence listing.

    Absent means `DEFAULT_LIMIT`; numeric values (blank reads as 0) are
    clamped into `[MIN_LIMIT, MAX_LIMIT]`; anything else is rejected.
    """
    if raw is None:
        return DEFAULT_LIMIT
    number = _to_number(raw)
    if math.isnan(number):
        raise RequestRejected("limit must be a number")
    return int(max(MIN_LIMIT, min(MAX_LIMIT, number)))


def coerce_ttl_days(raw: Any) -> int | float | None:
    """Coerce an optional `ttl_days` value.

    Returns None (keep the stored default) when the value is absent, null,
    or does not coerce to a finite number.
    """
    if raw is None:
        return None
    number = _to_number(raw)
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


class PayloadTooLarge(Exception):
    """Request body exceeds `MAX_BODY_BYTES`."""


MAX_BODY_BYTES = 1024 * 1024


async def read_body(request, limit: int = MAX_BODY_BYTES) -> bytes:
    """Read the request body, stopping as soon as it exceeds `limit` bytes.

    Raises:
        PayloadTooLarge: If `Content-Length` or the bytes received pass `limit`.
    """
    declared = request.headers.get("content-length")
    if declared is not None and declared.strip().isdigit() and int(declared) > limit:
        raise PayloadTooLarge()

    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise PayloadTooLarge()
        chunks.append(chunk)
    return b"".join(chunks)


async def read_json_object(request) -> dict[str, Any]:
    """Read and decode a request body that must be a JSON object."""
    raw = await read_body(request)
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError as exc:
        raise RequestRejected("request body must be valid JSON") from exc
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise RequestRejected("request body must be a JSON object")
    return body
