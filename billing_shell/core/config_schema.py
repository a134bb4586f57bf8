"""
Configuration Schemas.

Pydantic models defining the expected structure of each YAML config file.
Used by AppConfig to validate configuration at load time. Unknown keys or
wrong types raise a clear ValidationError at startup instead of a cryptic
KeyError deep in the shell.

Each top-level class corresponds to one file in config/settings/:
    ApiSchema      → api.yaml
    ShellSchema    → shell.yaml
    LoggingSchema  → logging.yaml

Every field carries a default, so a missing file means "use the defaults".
"""

from pydantic import BaseModel, ConfigDict, Field


class _StrictBase(BaseModel):
    """Base with extra='forbid' so unknown YAML keys are caught immediately."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# api.yaml
# =============================================================================


class ApiSchema(_StrictBase):
    host: str = "chargify.com"
    scheme: str = "https"
    timeout: float = 30.0
    user_agent: str = "billing-shell"


# =============================================================================
# shell.yaml
# =============================================================================


class ShellSchema(_StrictBase):
    pager: list[str] = Field(default_factory=lambda: ["less", "-R"])
    wrap_width: int = 80
    history_file: str | None = "~/.billing_shell_history"
    history_length: int = 1000
    prompt_optional_fields: bool = False


# =============================================================================
# logging.yaml
# =============================================================================


class ConsoleHandlerSchema(_StrictBase):
    enabled: bool = True


class FileHandlerSchema(_StrictBase):
    enabled: bool = False
    path: str = "logs/billing_shell.jsonl"
    max_bytes: int = 10485760
    backup_count: int = 5


class HandlersSchema(_StrictBase):
    console: ConsoleHandlerSchema = Field(default_factory=ConsoleHandlerSchema)
    file: FileHandlerSchema = Field(default_factory=FileHandlerSchema)


class LoggingSchema(_StrictBase):
    level: str = "WARNING"
    format: str = "console"
    handlers: HandlersSchema = Field(default_factory=HandlersSchema)
