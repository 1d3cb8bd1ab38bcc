"""Reader service configuration.

Settings are resolved once at startup by `load_reader_settings` and handed
to `create_app`; nothing else in the service reads the environment.

Recognised keys (env file or process environment):
- OVERLAY_READER_BIND     listen address, default 127.0.0.1
- OVERLAY_READER_PORT     listen port, default 18795
- OVERLAY_READER_TOKEN    bearer token required on /read/* routes
- OVERLAY_READER_DB_URL   Postgres connection string
- OVERLAY_READER_ENV_PATH optional explicit env file path
"""

from pathlib import Path

from pydantic_settings import SettingsConfigDict

from common.config import EnvLocations, ServiceSettings, resolve_settings

SERVICE_NAME = "overlay-reader"
ENV_PREFIX = "OVERLAY_READER_"
SERVICE_DIR = Path(__file__).resolve().parent.parent


class ReaderSettings(ServiceSettings):
    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)

    port: int = 18795


def env_locations(home: Path | None = None) -> EnvLocations:
    return EnvLocations.for_service(SERVICE_NAME, ENV_PREFIX, SERVICE_DIR, home=home)


def load_reader_settings(home: Path | None = None, environ=None) -> ReaderSettings:
    """Resolve the reader's env file (bootstrapping it if needed) and load settings."""
    return resolve_settings(ReaderSettings, env_locations(home), environ)
