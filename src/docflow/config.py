"""Docflow settings.

Four sections (local, remote, sync, logging) are declared as pydantic-settings
models. ``load_config`` reads a TOML file and passes its tables in as keyword
arguments; anything the file leaves out comes from ``DOCFLOW_*`` environment
variables, then from the defaults below.

A minimal file enabling the cloud store:
    [local]
    url = "sqlite+aiosqlite:///docflow-local.db"

    [remote]
    url = "https://example.supabase.co"
    anon_key = "public-anon-key"

Secrets are usually supplied through the environment instead:
    DOCFLOW_REMOTE__ACCESS_TOKEN="eyJhbGciOi..."
    DOCFLOW_SYNC__POLL_INTERVAL_SECONDS=2.5
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomli
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LocalStoreConfig(BaseSettings):
    """Device-local store configuration.

    Attributes:
        url: SQLAlchemy database URL with the aiosqlite driver
        storage_key: Namespaced key holding the whole project collection
        echo: Enable SQL query logging
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCFLOW_LOCAL__",
        extra="forbid",
    )

    url: str = Field(default="sqlite+aiosqlite:///docflow-local.db")
    storage_key: str = Field(default="docflow-projects", min_length=1)
    echo: bool = Field(default=False)


class RemoteStoreConfig(BaseSettings):
    """Cloud store configuration.

    The remote store is only used once a session exists. A session is
    taken from ``user_id`` and ``access_token`` when both are set.

    Attributes:
        url: Base URL of the PostgREST-compatible service (None disables it)
        anon_key: Public API key sent with every request
        table: Name of the projects collection
        timeout_seconds: Request timeout, None for no timeout
        user_id: Authenticated user id for the configured session
        access_token: Bearer token for the configured session
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCFLOW_REMOTE__",
        extra="forbid",
    )

    url: str | None = Field(default=None)
    anon_key: str = Field(default="")
    table: str = Field(default="projects", min_length=1)
    timeout_seconds: float | None = Field(default=None, gt=0)
    user_id: str | None = Field(default=None)
    access_token: str | None = Field(default=None)

    @property
    def configured(self) -> bool:
        """Whether a remote endpoint and key are available."""
        return bool(self.url) and bool(self.anon_key)

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Normalize the base URL so paths can be appended."""
        if v is None:
            return None
        return v.rstrip("/")


class SyncConfig(BaseSettings):
    """Change propagation configuration.

    Attributes:
        poll_interval_seconds: Reconciler re-fetch interval
        watch_interval_seconds: Interval for checking the shared local key
        migrate_on_start: Run local-to-remote migration when a session starts
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCFLOW_SYNC__",
        extra="forbid",
    )

    poll_interval_seconds: float = Field(default=1.0, gt=0, le=3600)
    watch_interval_seconds: float = Field(default=0.5, gt=0, le=3600)
    migrate_on_start: bool = Field(default=True)


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_LOG_FORMATS = ("json", "console")


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Attributes:
        level: Minimum level emitted, case-insensitive
        format: ``json`` for machine-readable lines, ``console`` for humans
        file: Rotating log file; stdout (or the stream given to
              ``setup_logging``) when unset
        rotation_size_mb: Size at which the log file rotates
        retention_count: Rotated files kept on disk
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCFLOW_LOGGING__",
        extra="forbid",
    )

    level: str = Field(default="INFO")
    format: str = Field(default="console")
    file: Path | None = Field(default=None)
    rotation_size_mb: int = Field(default=10, ge=1, le=1000)
    retention_count: int = Field(default=5, ge=1, le=100)

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level {v!r}; expected one of {', '.join(_LOG_LEVELS)}")
        return level

    @field_validator("format")
    @classmethod
    def normalize_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in _LOG_FORMATS:
            raise ValueError(f"Invalid log format {v!r}; expected one of {', '.join(_LOG_FORMATS)}")
        return fmt


class DocflowConfig(BaseSettings):
    """All Docflow settings.

    Nested keys map to environment variables as
    ``DOCFLOW_<SECTION>__<KEY>``, e.g. ``DOCFLOW_LOCAL__URL`` or
    ``DOCFLOW_LOGGING__LEVEL``.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCFLOW_",
        env_nested_delimiter="__",
        extra="forbid",
    )

    local: LocalStoreConfig = Field(default_factory=LocalStoreConfig)
    remote: RemoteStoreConfig = Field(default_factory=RemoteStoreConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def default_config_paths() -> list[Path]:
    """Locations searched when no config file is named explicitly."""
    return [
        Path.cwd() / "docflow.toml",
        Path.home() / ".config" / "docflow" / "config.toml",
    ]


def find_config_file(config_path: Path | None = None) -> Path | None:
    """Resolve the config file to read, if any.

    Raises:
        FileNotFoundError: If an explicit path does not exist
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return config_path
    return next((p for p in default_config_paths() if p.exists()), None)


def load_config(config_path: Path | None = None) -> DocflowConfig:
    """Build the configuration from a TOML file and the environment.

    The file is ``config_path`` when given, otherwise the first existing
    entry of ``default_config_paths()``. Keys present in the file take
    precedence over ``DOCFLOW_*`` variables; keys it omits fall back to the
    environment, then to the defaults.

    Raises:
        FileNotFoundError: If config_path is given but missing
        ValueError: If the file or environment holds invalid values
    """
    source = find_config_file(config_path)
    data: dict[str, Any] = {}
    if source is not None:
        with source.open("rb") as fh:
            data = tomli.load(fh)

    try:
        return DocflowConfig(**data)
    except ValidationError as e:
        where = f" in {source}" if source is not None else ""
        raise ValueError(f"Invalid configuration{where}: {e}") from e
