"""Runtime configuration assembled from the environment and an optional YAML file."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, MutableMapping, Optional

import yaml
from dotenv import load_dotenv

from .gateway import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY, DEFAULT_TIMEOUT

__all__ = ["BotConfig", "ConfigError", "DEFAULT_CONFIG_PATH", "DEFAULT_SERVICE_URL"]

DEFAULT_CONFIG_PATH = Path("config.yaml")
DEFAULT_SERVICE_URL = "http://localhost:3001"

# Environment variables and the YAML keys they override.
_ENV_KEYS: Mapping[str, str] = {
    "SERVICE_URL": "service_url",
    "GUILD_ID": "guild_id",
    "ERROR_LOG_CHANNEL_ID": "error_log_channel_id",
    "LOG_LEVEL": "log_level",
    "REQUEST_TIMEOUT": "request_timeout",
    "REQUEST_RETRIES": "request_retries",
    "REQUEST_RETRY_DELAY": "request_retry_delay",
}


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or malformed."""


def _optional_int(name: str, value: object) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc


def _number(name: str, value: object, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc


def _load_file(path: Path) -> MutableMapping[str, object]:
    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return {str(key): value for key, value in loaded.items()}


@dataclass(frozen=True)
class BotConfig:
    """Settings needed to run the bot."""

    token: str
    service_url: str = DEFAULT_SERVICE_URL
    guild_id: Optional[int] = None
    error_log_channel_id: Optional[int] = None
    log_level: str = "INFO"
    request_timeout: float = DEFAULT_TIMEOUT
    request_retries: int = DEFAULT_MAX_RETRIES
    request_retry_delay: float = DEFAULT_RETRY_DELAY

    @classmethod
    def from_mapping(cls, token: str, values: Mapping[str, object]) -> "BotConfig":
        service_url = str(values.get("service_url") or DEFAULT_SERVICE_URL).strip()
        log_level = str(values.get("log_level") or "INFO").upper()
        retries = _optional_int("request_retries", values.get("request_retries"))
        return cls(
            token=token,
            service_url=service_url,
            guild_id=_optional_int("guild_id", values.get("guild_id")),
            error_log_channel_id=_optional_int(
                "error_log_channel_id", values.get("error_log_channel_id")
            ),
            log_level=log_level,
            request_timeout=_number("request_timeout", values.get("request_timeout"), DEFAULT_TIMEOUT),
            request_retries=DEFAULT_MAX_RETRIES if retries is None else retries,
            request_retry_delay=_number(
                "request_retry_delay", values.get("request_retry_delay"), DEFAULT_RETRY_DELAY
            ),
        )

    @classmethod
    def from_env(
        cls,
        *,
        environ: Optional[Mapping[str, str]] = None,
        config_path: Optional[Path] = None,
    ) -> "BotConfig":
        """Build the configuration; environment values win over the YAML file."""

        if environ is None:
            load_dotenv()
            environ = os.environ
        token = environ.get("DISCORD_TOKEN")
        if not token:
            raise ConfigError(
                "DISCORD_TOKEN environment variable is required. "
                "Set it in the .env file before starting the bot."
            )
        path = config_path or Path(environ.get("CONFIG_PATH") or DEFAULT_CONFIG_PATH)
        values = _load_file(path)
        for env_key, key in _ENV_KEYS.items():
            value = environ.get(env_key)
            if value:
                values[key] = value
        return cls.from_mapping(token, values)
