"""Configuration loading and validation for the chat relay."""

from __future__ import annotations

from copy import deepcopy
import logging
import os
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    field_validator,
)

from .exceptions import ConfigValidationError

import tomllib  # stdlib since Python 3.11 (project requires >=3.11)

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "chat-relay"
CONFIG_PATH = CONFIG_DIR / "config.toml"

VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "CHAT_API_URL": ("gateway", "endpoint_url"),
    "CHAT_AUTH_KEY": ("gateway", "auth_key"),
    "CHAT_GATEWAY_URL": ("client", "gateway_url"),
}


def _validate_http_url(value: str, field_name: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme.lower() not in {"http", "https"}:
        raise ValueError(f"{field_name} must use http or https scheme.")
    if not (parsed.hostname or "").strip():
        raise ValueError(f"{field_name} must include a hostname.")
    return value


class AppConfig(BaseModel):
    """Application metadata for the terminal front-end."""

    title: str = "Chat Relay"

    @field_validator("title", mode="before")
    @classmethod
    def _validate_non_empty_string(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("String value must not be empty.")
        return normalized


class GatewayConfig(BaseModel):
    """Backend endpoint, transport credential, and listen address for the gateway.

    ``endpoint_url`` and ``auth_key`` are deliberately empty by default; the
    gateway reports a relay failure for every request until both are set.
    """

    endpoint_url: str = ""
    auth_key: str = ""
    timeout: int = Field(default=120, ge=1, le=3600)
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)

    @field_validator("endpoint_url", mode="before")
    @classmethod
    def _validate_endpoint(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("endpoint_url must be a string.")
        normalized = value.strip()
        if not normalized:
            return ""
        return _validate_http_url(normalized, "gateway.endpoint_url")

    @field_validator("auth_key", mode="before")
    @classmethod
    def _normalize_auth_key(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("auth_key must be a string.")
        return value.strip()

    @field_validator("host", mode="before")
    @classmethod
    def _validate_host(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("host must be a non-empty string.")
        return value.strip()


class ClientConfig(BaseModel):
    """Settings used by the conversation controller when talking to the gateway."""

    gateway_url: str = "http://127.0.0.1:8000/api/chat"
    request_timeout: int = Field(default=120, ge=1, le=3600)
    max_attachment_bytes: int = Field(default=5 * 1024 * 1024, ge=1, le=100 * 1024 * 1024)
    allowed_image_types: list[str] = Field(
        default_factory=lambda: ["image/png", "image/jpeg", "image/jpg"]
    )

    @field_validator("gateway_url", mode="before")
    @classmethod
    def _validate_gateway_url(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("gateway_url must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("gateway_url must not be empty.")
        return _validate_http_url(normalized, "client.gateway_url")

    @field_validator("allowed_image_types", mode="before")
    @classmethod
    def _validate_types(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            raise ValueError("allowed_image_types must be a list.")
        normalized: list[str] = []
        for item in value:
            if not isinstance(item, str) or "/" not in item:
                raise ValueError("allowed_image_types entries must be MIME types.")
            candidate = item.strip().lower()
            if candidate not in normalized:
                normalized.append(candidate)
        if not normalized:
            raise ValueError("allowed_image_types must not be empty.")
        return normalized


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/chat-relay/app.log"

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Logging level must be a string.")
        normalized = value.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"Unsupported log level {normalized!r}.")
        return normalized

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _validate_log_file_path(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("log_file_path must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("log_file_path must not be empty.")
        return normalized


class Config(BaseModel):
    """Root configuration model for all sections."""

    app: AppConfig = AppConfig()
    gateway: GatewayConfig = GatewayConfig()
    client: ClientConfig = ClientConfig()
    logging: LoggingConfig = LoggingConfig()


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump()


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Ensure that the config directory exists and return its path."""
    directory = config_dir or CONFIG_DIR
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("Unable to create config directory %s: %s", directory, exc)
    return directory


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override values onto base values."""
    merged: dict[str, Any] = deepcopy(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _enforce_private_permissions(path: Path) -> None:
    """Best-effort enforcement of private file permissions on POSIX systems.

    The file may hold the backend credential.
    """
    if os.name != "posix" or not path.exists():
        return
    try:
        path.chmod(0o600)
    except OSError as exc:
        LOGGER.warning("Unable to enforce 0600 permissions for %s: %s", path, exc)


def _env_overrides(environ: Mapping[str, str]) -> dict[str, dict[str, str]]:
    overrides: dict[str, dict[str, str]] = {}
    for variable, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(variable)
        if value is not None and value.strip():
            overrides.setdefault(section, {})[key] = value.strip()
    return overrides


def _safe_default_config() -> dict[str, dict[str, Any]]:
    """Return a deep copy of validated default config data."""
    return deepcopy(DEFAULT_CONFIG)


def _reset_invalid_fields(
    raw: dict[str, Any], exc: ValidationError
) -> tuple[dict[str, Any], list[str]]:
    """Return ``raw`` with every field named in ``exc`` restored to its default."""
    repaired = deepcopy(raw)
    reset: list[str] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        section = str(loc[0]) if loc else ""
        if section not in DEFAULT_CONFIG:
            continue
        defaults = DEFAULT_CONFIG[section]
        key = str(loc[1]) if len(loc) > 1 else ""
        if key in defaults and isinstance(repaired.get(section), dict):
            repaired[section][key] = deepcopy(defaults[key])
            reset.append(f"{section}.{key}")
        else:
            repaired[section] = deepcopy(defaults)
            reset.append(section)
    return repaired, reset


def _validate_config(raw: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Validate merged config, restoring only the invalid fields to their defaults.

    Valid values (including environment overrides) survive a bad neighbour;
    the whole config falls back to defaults only if repair still fails.
    """
    try:
        return Config.model_validate(raw).model_dump()
    except ValidationError as exc:
        repaired, reset = _reset_invalid_fields(raw, exc)
        LOGGER.warning(
            "Invalid configuration values replaced with defaults (%s): %s",
            ", ".join(reset),
            exc,
        )
    except Exception as exc:  # noqa: BLE001
        raise ConfigValidationError(f"Unable to validate configuration: {exc}") from exc

    try:
        return Config.model_validate(repaired).model_dump()
    except ValidationError as exc:
        LOGGER.warning("Configuration validation failed, using safe defaults: %s", exc)
        return _safe_default_config()


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, dict[str, Any]]:
    """
    Load configuration from TOML, merge with defaults and environment, and validate.

    The optional ``config_path`` and ``environ`` arguments are intended for
    tests and tooling; ``environ`` defaults to ``os.environ``.
    """
    target_path = config_path or CONFIG_PATH
    ensure_config_dir(target_path.parent)

    raw_data: dict[str, Any] = {}
    if target_path.exists():
        _enforce_private_permissions(target_path)
        try:
            raw_data = tomllib.loads(target_path.read_text(encoding="utf-8"))
        except (
            Exception
        ) as exc:  # noqa: BLE001
            LOGGER.warning("Failed to parse config at %s: %s", target_path, exc)
            raw_data = {}

    merged = (
        _deep_merge(DEFAULT_CONFIG, raw_data)
        if isinstance(raw_data, dict)
        else _safe_default_config()
    )
    merged = _deep_merge(merged, _env_overrides(os.environ if environ is None else environ))
    return _validate_config(merged)
