"""Configuration management for dbpods."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "dbpods" / "config.yaml"
CONFIG_PATH_ENV = "DBPODS_CONFIG"


def _normalize_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if normalized:
        return normalized
    return None


class Settings(BaseSettings):
    """
    Runtime configuration.

    Every option can come from `DBPODS_*` environment variables or from the
    YAML config file. Database credentials live here and nowhere else.
    """

    model_config = SettingsConfigDict(
        env_prefix="DBPODS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Cluster access.
    context: str | None = Field(
        default="sentio-sea",
        description="kubectl context every call is pinned to. Empty uses the current context.",
    )
    kubectl_binary: str = Field(
        default="kubectl",
        description="kubectl executable name or path.",
    )

    # ClickHouse client.
    clickhouse_user: str = Field(
        default="default_viewer",
        description="Principal used by clickhouse-client and by the grant check.",
    )
    clickhouse_password: str | None = Field(
        default=None,
        description="Password for clickhouse_user. `--password` is omitted when unset.",
    )
    clickhouse_http_port: int = Field(
        default=8123,
        ge=1,
        le=65535,
        description="Port of the HTTP interface probed by the health check ping.",
    )

    # PostgreSQL client.
    postgres_user: str = Field(
        default="default_viewer",
        description="Principal passed to psql -U.",
    )
    postgres_database: str = Field(
        default="postgres",
        description="Database passed to psql -d.",
    )

    # Connectivity retry.
    max_retries: int = Field(
        default=3,
        ge=1,
        description="Connectivity probe attempts before a check gives up.",
    )
    retry_delay_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Pause between connectivity probe attempts.",
    )

    # Output.
    run_log_path: Path | None = Field(
        default=Path("Result.log"),
        description="Append-only plain-text run log. Empty disables the file.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Diagnostic log level written to stderr.",
    )
    interactive: bool | None = Field(
        default=None,
        description="Force interactive (TTY) or captured mode. Auto-detected when unset.",
    )
    tools: list[str] = Field(
        default_factory=lambda: ["vim", "less"],
        description="Packages installed by `install-tools`.",
    )

    @field_validator("context", "clickhouse_password", mode="before")
    @classmethod
    def _normalize_optional_strings(cls, value: Any) -> str | None:
        return _normalize_optional_text(value)

    @field_validator("run_log_path", mode="before")
    @classmethod
    def _normalize_run_log_path(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str) and not value.strip():
            return None
        return Path(value).expanduser()

    @field_validator("tools", mode="before")
    @classmethod
    def _normalize_tools(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.split()
        return value

    @field_validator("tools")
    @classmethod
    def _require_tools(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("DBPODS_TOOLS must name at least one package.")
        return value

    @classmethod
    def from_yaml(cls, path: Path) -> Settings:
        """Load from YAML file; keys present in the file take precedence over env."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping.")
        return cls(**data)


def resolve_config_path() -> Path:
    raw = os.environ.get(CONFIG_PATH_ENV)
    if raw and raw.strip():
        return Path(raw.strip()).expanduser()
    return DEFAULT_CONFIG_PATH


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from the YAML config file when present, else from env and defaults."""
    path = config_path or resolve_config_path()
    if path.exists():
        return Settings.from_yaml(path)
    return Settings()
