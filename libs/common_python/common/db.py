"""Shared database connectivity for the overlay services.

Route handlers never open connections directly. They ask a connection
provider for one connection scoped to the current operation:

    async with provider.connect() as conn:
        result = await conn.execute(text(...), {...})

The default `EngineConnectionProvider` uses a `NullPool` engine, so every
`connect()` opens a brand-new Postgres connection and closes it when the block
exits (on success or on error). Anything with the same `connect()` shape can
be substituted, e.g. a pooled engine or a test fake.
"""

from typing import AsyncContextManager, Any, Protocol

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

ASYNC_DRIVERNAME = "postgresql+asyncpg"


class ConnectionProvider(Protocol):
    def connect(self) -> AsyncContextManager[Any]: ...

    async def dispose(self) -> None: ...


SSL_MODES = ("disable", "allow", "prefer", "require", "verify-ca", "verify-full")


def _libpq_connect_args(query) -> dict[str, Any]:
    """Translate libpq-style URL options into `asyncpg.connect()` keyword arguments.

    Raises:
        ValueError: For options asyncpg has no equivalent for, or bad values.
    """
    connect_args: dict[str, Any] = {}
    for key, value in query.items():
        if isinstance(value, tuple):
            value = value[-1]
        if key == "sslmode":
            if value not in SSL_MODES:
                raise ValueError(f"invalid sslmode in database url: {value}")
            connect_args["ssl"] = value
        elif key == "connect_timeout":
            try:
                connect_args["timeout"] = float(value)
            except ValueError:
                raise ValueError(f"invalid connect_timeout in database url: {value}") from None
        elif key == "application_name":
            connect_args.setdefault("server_settings", {})["application_name"] = value
        else:
            raise ValueError(f"unsupported database url option: {key}")
    return connect_args


def parse_database_url(url: str) -> tuple[str, dict[str, Any]]:
    """Split a Postgres connection string into an asyncpg SQLAlchemy URL and connect args.

    Accepts `postgres://`, `postgresql://` and `postgresql+<driver>://` forms.
    Query options (`sslmode`, `connect_timeout`, `application_name`) are
    moved out of the URL and returned as `asyncpg.connect()` arguments.
    """
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    try:
        parsed = make_url(url)
    except ArgumentError as exc:
        raise ValueError(f"invalid database url: {exc}") from exc
    if parsed.get_backend_name() != "postgresql":
        raise ValueError(f"unsupported database url scheme: {parsed.drivername}")
    connect_args = _libpq_connect_args(parsed.query)
    normalized = parsed.set(drivername=ASYNC_DRIVERNAME, query={})
    return normalized.render_as_string(hide_password=False), connect_args


def async_database_url(url: str) -> str:
    """Normalize a Postgres connection string to the asyncpg SQLAlchemy dialect."""
    return parse_database_url(url)[0]


def create_engine(url: str) -> AsyncEngine:
    """Create an unpooled, autocommit engine for request-scoped connections."""
    async_url, connect_args = parse_database_url(url)
    return create_async_engine(
        async_url,
        connect_args=connect_args,
        poolclass=NullPool,
        isolation_level="AUTOCOMMIT",
    )


class EngineConnectionProvider:
    """Connection provider backed by a SQLAlchemy `AsyncEngine`."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    @classmethod
    def from_url(cls, url: str) -> "EngineConnectionProvider":
        return cls(create_engine(url))

    def connect(self) -> AsyncContextManager[AsyncConnection]:
        return self.engine.connect()

    async def dispose(self) -> None:
        await self.engine.dispose()


def get_provider(request: Request) -> ConnectionProvider:
    """FastAPI dependency returning the app's connection provider.

    Handlers declare `provider: ConnectionProvider = Depends(get_provider)` and
    open a connection per operation with `provider.connect()`.
    """
    return request.app.state.provider
