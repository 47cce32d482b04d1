"""
config/settings.py — cordlink Runtime Settings

Merges config.yaml (defaults/structure) with .env (secrets).
Pydantic-powered — all fields are validated and typed.

  - The bot token only ever comes from the environment (CORDLINK_TOKEN)
    and is held as a SecretStr so it never shows up in reprs or logs
  - GatewayConfig rejects negative intents and unknown presence statuses
  - validate_all() performs full startup validation and raises ConfigError
    with a clear, human-readable message listing every problem found
  - load_settings() respects CORDLINK_CONFIG env var as a fallback
    when no explicit config_path argument is given
"""

from __future__ import annotations

import os
import threading as _threading
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cordlink.gateway.protocol import DEFAULT_PROPERTIES, Status


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────

class ConfigError(Exception):
    """Raised by validate_all() when one or more config problems are found."""


_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_VALID_STATUSES = {s.value for s in Status}


# ─────────────────────────────────────────────────────────────────────────────
# Sub-models
# ─────────────────────────────────────────────────────────────────────────────

class GatewayConfig(BaseModel):
    intents: int = 0
    api_base: str = "https://discord.com/api/v10"
    gateway_version: int = 10
    status: str = "online"
    properties: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_PROPERTIES))
    max_message_size: int = 2**20

    @field_validator("intents")
    @classmethod
    def _non_negative_intents(cls, v: int) -> int:
        if v < 0:
            raise ValueError("gateway.intents must be a non-negative bitmask")
        return v

    @field_validator("status")
    @classmethod
    def _valid_status(cls, v: str) -> str:
        if v not in _VALID_STATUSES:
            raise ValueError(
                f"gateway.status must be one of {sorted(_VALID_STATUSES)}, got '{v}'"
            )
        return v

    @field_validator("api_base")
    @classmethod
    def _http_api_base(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            raise ValueError("gateway.api_base must be an http(s) URL")
        return v.rstrip("/")


class HttpConfig(BaseModel):
    timeout_seconds: float = 10.0

    @field_validator("timeout_seconds")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http.timeout_seconds must be > 0")
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str = "./data/logs"
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_output: bool = True
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level '{v}' is not valid. "
                f"Must be one of: {sorted(_VALID_LOG_LEVELS)}"
            )
        return upper


# ─────────────────────────────────────────────────────────────────────────────
# Root Settings
# ─────────────────────────────────────────────────────────────────────────────

class Settings(BaseSettings):
    """
    cordlink runtime settings.

    Priority (highest to lowest):
      1. config.yaml sections passed in by load_settings()
      2. Environment variables (nested keys use "__", e.g. GATEWAY__INTENTS)
      3. .env file
      4. Field defaults

    The token is only ever read from the environment or .env.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    # -- Secrets from .env ---------------------------------------------------
    token: Optional[SecretStr] = Field(default=None, alias="CORDLINK_TOKEN")

    # -- Structured config (from config.yaml) --------------------------------
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("token", mode="before")
    @classmethod
    def _blank_token_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("gateway", mode="before")
    @classmethod
    def _coerce_gateway(cls, v: Any) -> Any:
        return GatewayConfig(**v) if isinstance(v, dict) else v

    @field_validator("http", mode="before")
    @classmethod
    def _coerce_http(cls, v: Any) -> Any:
        return HttpConfig(**v) if isinstance(v, dict) else v

    @field_validator("logging", mode="before")
    @classmethod
    def _coerce_logging(cls, v: Any) -> Any:
        return LoggingConfig(**v) if isinstance(v, dict) else v

    # -- Convenience properties ----------------------------------------------

    @property
    def token_value(self) -> Optional[str]:
        return self.token.get_secret_value() if self.token else None

    @property
    def log_level(self) -> str:
        return self.logging.level.upper()

    @property
    def log_dir(self) -> Path:
        return Path(self.logging.log_dir).expanduser()

    def validate_all(self) -> None:
        """
        Full startup validation. Raises ConfigError listing every problem found.

        Pydantic field validators catch type/value errors at parse time; this
        method catches what they can't see (the token is allowed to be absent
        at parse time so library users can build Settings without one).
        """
        errors: list[str] = []

        if not self.token_value:
            errors.append(
                "CORDLINK_TOKEN is not set. Add your bot token to the .env "
                "file or the environment."
            )

        if self.gateway.gateway_version < 6:
            errors.append(
                f"gateway.gateway_version {self.gateway.gateway_version} is no "
                f"longer served. Use 10."
            )

        if errors:
            numbered = "\n".join(f"  {i+1}. {e}" for i, e in enumerate(errors))
            raise ConfigError(
                f"\n\ncordlink startup failed: {len(errors)} configuration "
                f"problem(s) found:\n\n{numbered}\n\n"
                f"Fix the issues above in config/config.yaml or your .env file "
                f"and restart.\n"
            )


# ─────────────────────────────────────────────────────────────────────────────
# Loader + singleton
# ─────────────────────────────────────────────────────────────────────────────

_singleton: Optional[Settings] = None
_singleton_lock = _threading.Lock()

_KNOWN_SECTIONS = {"gateway", "http", "logging"}


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _resolve_config_path(config_path: str | Path | None) -> Path:
    """
    Resolve the config file path with this priority:
      1. Explicit config_path argument (from --config CLI flag)
      2. CORDLINK_CONFIG environment variable
      3. Default: config/config.yaml
    """
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get("CORDLINK_CONFIG")
    if env_path:
        return Path(env_path)
    return Path("config/config.yaml")


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings by merging config.yaml with environment variables."""
    global _singleton
    yaml_data = _load_yaml(_resolve_config_path(config_path))
    init_kwargs = {k: v for k, v in yaml_data.items() if k in _KNOWN_SECTIONS}

    instance = Settings(**init_kwargs)
    with _singleton_lock:
        _singleton = instance
    return instance


def get_settings() -> Settings:
    """
    Return the global Settings singleton, loading it from the default
    config path on first use.
    """
    global _singleton
    if _singleton is not None:
        return _singleton
    with _singleton_lock:
        if _singleton is None:
            _singleton = Settings(**{
                k: v
                for k, v in _load_yaml(_resolve_config_path(None)).items()
                if k in _KNOWN_SECTIONS
            })
    return _singleton
