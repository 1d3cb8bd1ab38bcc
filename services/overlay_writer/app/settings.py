"""Writer service configuration.

Recognised keys (env file or process environment):
- OVERLAY_WRITER_BIND     listen address, default 127.0.0.1
- OVERLAY_WRITER_PORT     listen port, default 18794
- OVERLAY_WRITER_TOKEN    bearer token required on /write/* routes
- OVERLAY_WRITER_DB_URL   Postgres connection string
- OVERLAY_WRITER_ENV_PATH optional explicit env file path
"""

from pathlib import Path

from pydantic_settings import SettingsConfigDict

from common.config import EnvLocations, ServiceSettings, resolve_settings

SERVICE_NAME = "overlay-writer"
ENV_PREFIX = "OVERLAY_WRITER_"
SERVICE_DIR = Path(__file__).resolve().parent.parent


class WriterSettings(ServiceSettings):
    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)

    port: int = 18794


def env_locations(home: Path | None = None) -> EnvLocations:
    return EnvLocations.for_service(SERVICE_NAME, ENV_PREFIX, SERVICE_DIR, home=home)


def load_writer_settings(home: Path | None = None, environ=None) -> WriterSettings:
    return resolve_settings(WriterSettings, env_locations(home), environ)
