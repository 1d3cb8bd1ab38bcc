"""Overlay reader: FastAPI application factory / entrypoint.

Exposes read-only access to the overlay tables:
- GET /health                     (no auth)
- GET /read/memory_tiers/by_hash  (bearer auth)
- GET /read/evidence/by_task      (bearer auth)

Operational notes:
- Configuration is resolved once in `main()` (see `settings.py`).
- Each request opens and closes its own database connection.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from common.auth import Unauthorized, unauthorized_handler
from common.config import ConfigError
from common.db import ConnectionProvider, EngineConnectionProvider
from common.logging import configure_logging
from common.server import serve

from .routes import router
from .settings import SERVICE_NAME, ReaderSettings, load_reader_settings

logger = logging.getLogger(__name__)


def create_app(settings: ReaderSettings, provider: ConnectionProvider | None = None) -> FastAPI:
    """Build the reader app around already-resolved settings.

    Args:
        settings: Resolved reader settings.
        provider: Connection provider; defaults to an unpooled engine on `settings.db_url`.
    """
    if provider is None:
        provider = EngineConnectionProvider.from_url(settings.db_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await provider.dispose()

    app = FastAPI(title="Overlay Reader", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.provider = provider
    app.add_exception_handler(Unauthorized, unauthorized_handler)

    @app.get("/health")
    async def health():
        """Unauthenticated liveness probe.

        Returns:
            dict: service identity, pid, resolved env file, bind address and port.
        """
        return {
            "ok": True,
            "service": SERVICE_NAME,
            "pid": os.getpid(),
            "env_source": settings.env_source,
            "bind": settings.bind,
            "port": settings.port,
        }

    app.include_router(router)
    return app


def main() -> int:
    """Resolve config, build the app and serve it. Returns the process exit code."""
    configure_logging(SERVICE_NAME)
    try:
        settings = load_reader_settings()
        app = create_app(settings)
    except (ConfigError, ValueError) as exc:
        logger.error("%s", exc)
        return 1
    return serve(app, settings.bind, settings.port)


if __name__ == "__main__":
    raise SystemExit(main())
