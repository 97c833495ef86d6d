"""Configuration loading from YAML and environment.

Secrets (API keys) are taken from environment variables or from files
(Docker secrets). Never put real keys in config files committed to the
repo. Environment variable names match the ones the bot has always used:
BASE_URL, REPORT_API_KEY, REPORT_POLL_SECONDS, DISCORD_API_KEY,
DISCORD_REPORT_CHANNEL_ID.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(ValueError):
    """Raised when required configuration is missing or invalid."""

    pass


def _read_secret(env: dict[str, str], env_key: str, file_env_key: str) -> str | None:
    """Read secret from env var or from file path in env (e.g. Docker
    secrets)."""
    value = _clean(env.get(env_key))
    if value:
        return value
    file_path = env.get(file_env_key)
    if file_path:
        try:
            return _clean(Path(file_path).read_text())
        except OSError as e:
            raise ConfigurationError(f"Cannot read {file_env_key}={file_path}: {e}") from e
    return None


def _clean(value: str | None) -> str | None:
    """Strip value; unresolved ${VAR} placeholders and blanks count as unset."""
    if value is None:
        return None
    value = str(value).strip()
    if not value or value.startswith("${"):
        return None
    return value


class ForumConfig(BaseSettings):
    """Forum the reports are read from."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore", frozen=True)

    base_url: str | None = Field(default=None, description="Forum base URL, e.g. https://forum.example.com/")

    @field_validator("base_url")
    @classmethod
    def _trailing_slash(cls, value: str | None) -> str | None:
        value = _clean(value)
        if value and not value.endswith("/"):
            value += "/"
        return value


class ReportConfig(BaseSettings):
    """Report API credentials, polling and retry settings."""

    model_config = SettingsConfigDict(env_prefix="REPORT_", extra="ignore", frozen=True)

    api_key: str | None = Field(default=None, description="XF-Api-Key header value; use env or secret file")
    poll_seconds: int = Field(default=60, ge=1, description="Seconds between polls")
    max_retries: int = Field(default=3, ge=1, description="Attempts per fetch (first one included)")
    retry_delay_seconds: float = Field(default=1.0, ge=0, description="Linear backoff base delay")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Timeout per request attempt")


class DiscordConfig(BaseSettings):
    """Discord bot token and the channel reports are posted to."""

    model_config = SettingsConfigDict(env_prefix="DISCORD_", extra="ignore", frozen=True)

    api_key: str | None = Field(default=None, description="Bot token; use env or secret file")
    report_channel_id: str | None = Field(default=None, description="Text channel id for report alerts")
    api_url: str = Field(default="https://discord.com/api/v10", description="Discord REST API base URL")


class StoreConfig(BaseSettings):
    """Local report store settings."""

    model_config = SettingsConfigDict(env_prefix="STORE_", extra="ignore", frozen=True)

    path: str = Field(default="reports.json", description="JSON document holding known reports")


class LoggingConfig(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="LOGGING_", extra="ignore", frozen=True)

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )


class AppConfig(BaseSettings):
    """Root application config from YAML + env."""

    model_config = SettingsConfigDict(extra="ignore", frozen=True)

    forum: ForumConfig = Field(default_factory=ForumConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def base_url(self) -> str:
        return self.forum.base_url or ""

    @property
    def report_api_url(self) -> str:
        """Endpoint returning the open report collection."""
        return f"{self.base_url}api/reports/"

    @property
    def report_url(self) -> str:
        """Prefix of a report's page on the forum; report id is appended."""
        return f"{self.base_url}forums/reports/"

    @property
    def poll_interval_seconds(self) -> int:
        return self.report.poll_seconds

    def missing_required(self) -> list[str]:
        """Env names of required values that are not set."""
        required = {
            "BASE_URL": self.forum.base_url,
            "REPORT_API_KEY": self.report.api_key,
            "DISCORD_API_KEY": self.discord.api_key,
            "DISCORD_REPORT_CHANNEL_ID": self.discord.report_channel_id,
        }
        return [key for key, value in required.items() if not _clean(value)]


def _substitute_env(value: Any, env: dict[str, str]) -> Any:
    """Replace ${VAR} and $VAR in strings with os.environ."""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            key = value[2:-1].strip()
            return env.get(key, value)
        if value.startswith("$") and not value.startswith("${"):
            key = value[1:].strip()
            return env.get(key, value)
        return value
    if isinstance(value, dict):
        return {k: _substitute_env(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env(v, env) for v in value]
    return value


def _with_secret(section: dict[str, Any], key: str, secret: str | None) -> dict[str, Any]:
    if _clean(section.get(key)) or not secret:
        return section
    return {**section, key: secret}


def load_config(config_path: Path | None = None, require: bool = True) -> AppConfig:
    """Load config from YAML file (optional) and environment.

    Secrets: REPORT_API_KEY or REPORT_API_KEY_FILE, DISCORD_API_KEY or
    DISCORD_API_KEY_FILE. Raises ConfigurationError when a value is invalid
    or, with require=True, when a required value is missing.
    """
    env = dict(os.environ)

    path = config_path or Path("config.yaml")
    raw: dict[str, Any] = {}
    if path.is_file():
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        raw = _substitute_env(raw, env)

    report_raw = _with_secret(
        raw.get("report") or {}, "api_key", _read_secret(env, "REPORT_API_KEY", "REPORT_API_KEY_FILE")
    )
    discord_raw = _with_secret(
        raw.get("discord") or {}, "api_key", _read_secret(env, "DISCORD_API_KEY", "DISCORD_API_KEY_FILE")
    )

    try:
        config = AppConfig(
            forum=ForumConfig(**(raw.get("forum") or {})),
            report=ReportConfig(**report_raw),
            discord=DiscordConfig(**discord_raw),
            store=StoreConfig(**(raw.get("store") or {})),
            logging=LoggingConfig(**(raw.get("logging") or {})),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    if require:
        missing = config.missing_required()
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")
    return config
