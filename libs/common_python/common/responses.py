"""Response envelope policy for gated routes.

Every gated operation returns `{"ok": true, ...result}` on success. Any
exception raised while validating or talking to the store is turned into
HTTP 400 `{"ok": false, "error": <message>}` here, in one place, instead of
each route carrying its own try/except.
"""

import functools
import logging
from typing import Any, Awaitable, Callable

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError

from .validation import PayloadTooLarge

logger = logging.getLogger(__name__)


def error_message(exc: BaseException) -> str:
    """Message reported to the client for a failed operation.

    Driver errors wrapped by SQLAlchemy are unwrapped so the client sees the
    database's own error text rather than SQLAlchemy's decorated repr.
    """
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig)
    return str(exc) or exc.__class__.__name__


def ok(result: dict[str, Any]) -> JSONResponse:
    return JSONResponse(content=jsonable_encoder({"ok": True, **result}))


def failed(exc: BaseException, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": error_message(exc)})


def enveloped(operation: Callable[..., Awaitable[dict[str, Any]]]):
    """Decorate a route coroutine returning a result dict with the envelope policy."""

    @functools.wraps(operation)
    async def route(*args, **kwargs) -> JSONResponse:
        try:
            result = await operation(*args, **kwargs)
        except PayloadTooLarge:
            return JSONResponse(status_code=413, content={"ok": False, "error": "request entity too large"})
        except Exception as exc:
            request = kwargs.get("request")
            where = request.url.path if request is not None else operation.__name__
            logger.warning("%s failed: %s", where, error_message(exc))
            return failed(exc)
        return ok(result)

    return route
