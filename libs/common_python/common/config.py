"""Configuration-source resolution shared by the overlay services.

Each service reads a flat `KEY=value` env file. Which file is used is decided
once at startup, first match wins:

1. An explicit override path from `<PREFIX>ENV_PATH`. If it is set but the
   file does not exist, startup fails (no fallback).
2. The canonical per-user file `~/.openclaw/<service>.env`.
3. A local bootstrap file shipped beside the service code.

When the canonical file is missing and the local one exists, the local file is
copied into the canonical location once (temp file + atomic rename) and the
canonical copy is used from then on.

Values from the chosen file are loaded into a `ServiceSettings` subclass
(pydantic-settings). Real process environment variables win over file values.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CANONICAL_DIRNAME = ".openclaw"


class ConfigError(RuntimeError):
    """Fatal startup misconfiguration (missing file, missing required value)."""


class ServiceSettings(BaseSettings):
    """Settings every overlay service needs.

    Subclasses set `env_prefix` and the default port.
    """

    model_config = SettingsConfigDict(extra="ignore", env_file_encoding="utf-8")

    bind: str = "127.0.0.1"
    port: int
    token: str = Field(min_length=1)
    db_url: str = Field(min_length=1)

    # Not read from the environment; filled in by `load_settings`.
    env_source: str | None = Field(default=None, exclude=True)


SettingsT = TypeVar("SettingsT", bound=ServiceSettings)


@dataclass(frozen=True)
class EnvLocations:
    """Where one service looks for its env file."""

    service: str
    override_var: str
    canonical: Path
    local: Path

    @classmethod
    def for_service(
        cls,
        service: str,
        env_prefix: str,
        local_dir: Path,
        home: Path | None = None,
    ) -> "EnvLocations":
        home = home if home is not None else Path.home()
        filename = f"{service}.env"
        return cls(
            service=service,
            override_var=f"{env_prefix}ENV_PATH",
            canonical=(home / CANONICAL_DIRNAME / filename).resolve(),
            local=(local_dir / filename).resolve(),
        )


def safe_copy_if_missing(src: Path, dst: Path) -> bool:
    """Copy `src` to `dst` unless `dst` already exists.

    The bytes are written to a temporary file in `dst`'s directory and then
    renamed into place, so `dst` is either absent or complete.

    Returns:
        bool: True if this call created `dst`.
    """
    if not src.exists() or dst.exists():
        return False

    dst.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{dst.name}.", suffix=".tmp", dir=dst.parent)
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        shutil.copyfile(src, tmp)
        if dst.exists():
            # another process materialized it first
            return False
        os.replace(tmp, dst)
    finally:
        if tmp.exists():
            tmp.unlink()
    return True


def resolve_env_source(
    locations: EnvLocations,
    environ: dict[str, str] | None = None,
) -> Path:
    """Pick the env file to load, bootstrapping the canonical copy if needed.

    Args:
        locations: The service's override variable and candidate paths.
        environ: Environment mapping to read the override from (defaults to `os.environ`).

    Returns:
        Path: Absolute path of the file that should be loaded.

    Raises:
        ConfigError: If the override points at a missing file, or no file exists at all.
    """
    environ = os.environ if environ is None else environ
    tag = f"[{locations.service}]"

    override = (environ.get(locations.override_var) or "").strip()
    if override:
        path = Path(override).resolve()
        if not path.exists():
            raise ConfigError(f"{tag} {locations.override_var} set but file not found: {path}")
        return path

    canonical, local = locations.canonical, locations.local

    if not canonical.exists() and local.exists():
        if safe_copy_if_missing(local, canonical):
            logger.info("Bootstrapped env into %s: %s", CANONICAL_DIRNAME, canonical)

    if canonical.exists():
        return canonical
    if local.exists():
        return local

    raise ConfigError(
        f"{tag} Missing env file.\n"
        f"Checked:\n"
        f"  - {canonical}\n"
        f"  - {local}\n"
        f"Fix: put {canonical.name} in one of those locations, or set {locations.override_var}."
    )


def load_settings(settings_cls: type[SettingsT], source: Path, service: str) -> SettingsT:
    """Build `settings_cls` from `source` plus the process environment.

    Raises:
        ConfigError: If a required value is missing or a value fails to parse.
    """
    prefix = settings_cls.model_config.get("env_prefix", "")
    try:
        settings = settings_cls(_env_file=source)
    except ValidationError as exc:
        problems = []
        for err in exc.errors():
            name = f"{prefix}{err['loc'][0]}".upper() if err["loc"] else prefix
            if err["type"] == "missing" or err["type"] == "string_too_short":
                problems.append(f"Missing required env var: {name}")
            else:
                problems.append(f"Invalid value for {name}: {err['msg']}")
        raise ConfigError(f"[{service}] " + "; ".join(problems)) from exc

    settings.env_source = str(source)
    return settings


def resolve_settings(
    settings_cls: type[SettingsT],
    locations: EnvLocations,
    environ: dict[str, str] | None = None,
) -> SettingsT:
    """Resolve the env file for a service and load its settings."""
    source = resolve_env_source(locations, environ)
    return load_settings(settings_cls, source, locations.service)
