"""Configuration management for the permission set removal action."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from permset_revoker import __version__

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class HttpSettings(BaseModel):
    timeout_seconds: float = Field(default=30.0, ge=0.1, le=600.0)
    user_agent: str = Field(
        default=f"permset-revoker/{__version__}",
        description="Client identifier sent as User-Agent on every outbound request",
    )

    @field_validator("user_agent")
    @classmethod
    def _validate_user_agent(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("user_agent must not be empty")
        return value


class SalesforceSettings(BaseModel):
    api_version: str = Field(default="v61.0", pattern=r"^v\d+\.\d+$")


class RecoverySettings(BaseModel):
    """Failure classification policy.

    ``default_decision`` applies to errors that carry none of the known
    status signals.
    """

    default_decision: Literal["retryable", "fatal"] = Field(default="retryable")


class Settings(BaseModel):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    salesforce: SalesforceSettings = Field(default_factory=SalesforceSettings)
    recovery: RecoverySettings = Field(default_factory=RecoverySettings)


ENV_KEYS = {
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "http_timeout": "HTTP_TIMEOUT_SECONDS",
    "user_agent": "HTTP_USER_AGENT",
    "api_version": "SALESFORCE_API_VERSION",
    "default_decision": "RECOVERY_DEFAULT_DECISION",
}


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    if candidate.is_absolute():
        return str(candidate.resolve())
    return str((_project_root() / candidate).resolve())


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])

    settings_data: dict[str, object] = {
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "http": {
            "timeout_seconds": _env_float(
                ENV_KEYS["http_timeout"],
                HttpSettings().timeout_seconds,
            ),
            "user_agent": os.getenv(ENV_KEYS["user_agent"], HttpSettings().user_agent),
        },
        "salesforce": {
            "api_version": os.getenv(
                ENV_KEYS["api_version"], SalesforceSettings().api_version
            ),
        },
        "recovery": {
            "default_decision": os.getenv(
                ENV_KEYS["default_decision"], RecoverySettings().default_decision
            )
            .strip()
            .lower(),
        },
    }

    try:
        return Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc
