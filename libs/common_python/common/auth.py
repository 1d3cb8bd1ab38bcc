"""Bearer-token gate for the overlay services.

Every route except `/health` is mounted on a router that depends on
`require_bearer`. A request passes only when its `Authorization` header is
exactly `Bearer <token>` and `<token>` equals the service's configured token.
"""

import hmac

from fastapi import Request
from fastapi.responses import JSONResponse

BEARER_PREFIX = "Bearer "


class Unauthorized(Exception):
    """Raised when a request fails the bearer check."""


def bearer_matches(header: str | None, token: str) -> bool:
    """Return True when `header` is `Bearer <token>` with an exact token match.

    Scheme and token are compared case-sensitively; no trimming is applied.
    """
    if not token:
        raise ValueError("bearer token must be configured")
    if not header or not header.startswith(BEARER_PREFIX):
        return False
    presented = header[len(BEARER_PREFIX):]
    return hmac.compare_digest(presented.encode("utf-8"), token.encode("utf-8"))


async def require_bearer(request: Request) -> None:
    """FastAPI dependency enforcing the bearer token from `app.state.settings`."""
    token = request.app.state.settings.token
    if not bearer_matches(request.headers.get("authorization"), token):
        raise Unauthorized()


async def unauthorized_handler(request: Request, exc: Unauthorized) -> JSONResponse:
    return JSONResponse(status_code=401, content={"ok": False, "error": "unauthorized"})
