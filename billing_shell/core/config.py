"""
Configuration Management.

Loads secrets from the environment (and config/.env) and settings from
config/settings/*.yaml. The shell is usable without any of these files:
when no project root is found, or a settings file is absent, the schema
defaults apply.

Secrets (environment, prefix CHARGIFY_):
    CHARGIFY_SUBDOMAIN, CHARGIFY_API_KEY, CHARGIFY_SITE_KEY,
    CHARGIFY_DEFAULT_FAMILY

Settings (YAML):
    api.yaml      - API host, scheme, timeout, user agent
    shell.yaml    - Pager command, help wrap width, history, prompts
    logging.yaml  - Logging configuration
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from billing_shell.core.config_schema import ApiSchema, LoggingSchema, ShellSchema


def find_project_root() -> Path:
    """Find project root by looking for .project_root marker file."""
    current = Path.cwd()
    while current != current.parent:
        if (current / ".project_root").exists():
            return current
        current = current.parent
    raise RuntimeError("Project root not found. Ensure .project_root file exists.")


def load_yaml_config(filename: str) -> dict[str, Any]:
    """
    Load a YAML configuration file from config/settings/.

    Returns an empty dict when there is no project root or no such file.
    """
    try:
        project_root = find_project_root()
    except RuntimeError:
        return {}

    config_path = project_root / "config" / "settings" / filename
    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


class Settings(BaseSettings):
    """Credentials read from CHARGIFY_* environment variables or config/.env."""

    subdomain: str | None = None
    api_key: str | None = None
    site_key: str | None = None
    default_family: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="CHARGIFY_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def _load_validated(schema_cls: type, filename: str) -> Any:
    """Load YAML and validate against schema. Returns typed model instance."""
    raw = load_yaml_config(filename)
    try:
        return schema_cls(**raw)
    except ValidationError as e:
        raise ValueError(
            f"Invalid configuration in {filename}:\n{e}"
        ) from e


class AppConfig:
    """
    Application configuration loaded from YAML files.

    Each YAML file is validated against its Pydantic schema at load time.
    Properties return typed Pydantic model instances with attribute access.
    """

    def __init__(self) -> None:
        self._api = _load_validated(ApiSchema, "api.yaml")
        self._shell = _load_validated(ShellSchema, "shell.yaml")
        self._logging = _load_validated(LoggingSchema, "logging.yaml")

    @property
    def api(self) -> ApiSchema:
        """Billing API connection settings."""
        return self._api

    @property
    def shell(self) -> ShellSchema:
        """Interactive shell settings."""
        return self._shell

    @property
    def logging(self) -> LoggingSchema:
        """Logging settings."""
        return self._logging


@lru_cache
def get_settings() -> Settings:
    """Get cached secrets instance. Reads config/.env when a project root exists."""
    try:
        env_path = find_project_root() / "config" / ".env"
    except RuntimeError:
        return Settings()
    return Settings(_env_file=str(env_path))


@lru_cache
def get_app_config() -> AppConfig:
    """Get cached application configuration."""
    return AppConfig()
