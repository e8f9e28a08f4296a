"""Configuration loading and validation for the clipboard assistant."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
import logging
import math
import os
from pathlib import Path
import tomllib
from typing import Any
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .exceptions import ConfigValidationError

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "clipai"
CONFIG_PATH = CONFIG_DIR / "config.toml"

API_KEY_ENV_VARS = ("CLIPAI_API_KEY", "OPENAI_API_KEY")
VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000


class ApiConfig(BaseModel):
    """Credential and endpoint for the chat-completions provider."""

    api_key: str = ""
    base_url: str = "https://api.openai.com/v1"
    timeout: int = Field(default=120, ge=1, le=3600)

    @field_validator("api_key", mode="before")
    @classmethod
    def _normalize_api_key(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("api_key must be a string.")
        return value.strip()

    @field_validator("base_url", mode="before")
    @classmethod
    def _validate_base_url(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("base_url must be a string.")
        normalized = value.strip().rstrip("/")
        parsed = urlparse(normalized)
        if parsed.scheme.lower() not in {"http", "https"}:
            raise ValueError("base_url must use http or https scheme.")
        if not parsed.hostname:
            raise ValueError("base_url must include a hostname.")
        try:
            parsed.port
        except ValueError as exc:
            raise ValueError("base_url port must be in range 0-65535.") from exc
        return normalized


class ModelConfig(BaseModel):
    """Model preferences, stored as the raw strings the user typed."""

    model: str = DEFAULT_MODEL
    temperature: str = str(DEFAULT_TEMPERATURE)
    max_tokens: str = str(DEFAULT_MAX_TOKENS)

    @field_validator("model", mode="before")
    @classmethod
    def _validate_model(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("Model name must not be empty.")
        return normalized

    @field_validator("temperature", "max_tokens", mode="before")
    @classmethod
    def _numeric_as_string(cls, value: Any) -> str:
        # Odd values are kept as text and resolved by the lenient parsers.
        if isinstance(value, str):
            return value.strip()
        return str(value)


class HotkeysConfig(BaseModel):
    """JSON-encoded hotkey list overriding the built-in actions."""

    json_text: str = Field(default="", alias="json")
    model_config = ConfigDict(populate_by_name=True)

    @field_validator("json_text", mode="before")
    @classmethod
    def _normalize_json(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("hotkeys.json must be a string.")
        return value


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/clipai/app.log"

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

    model_config = ConfigDict(populate_by_name=True)
    api: ApiConfig = ApiConfig()
    model: ModelConfig = ModelConfig()
    hotkeys: HotkeysConfig = HotkeysConfig()
    logging: LoggingConfig = LoggingConfig()


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump(by_alias=True)


@dataclass(frozen=True)
class Preferences:
    """Resolved, typed view of the configuration consumed by the core."""

    api_key: str = ""
    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    base_url: str = "https://api.openai.com/v1"
    timeout: int = 120
    hotkeys_json: str = ""

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.strip())

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> Preferences:
        api_cfg = config.get("api", {})
        model_cfg = config.get("model", {})
        hotkeys_cfg = config.get("hotkeys", {})
        return cls(
            api_key=str(api_cfg.get("api_key", "")),
            model=str(model_cfg.get("model") or DEFAULT_MODEL),
            temperature=parse_temperature(model_cfg.get("temperature")),
            max_tokens=parse_max_tokens(model_cfg.get("max_tokens")),
            base_url=str(api_cfg.get("base_url", DEFAULT_CONFIG["api"]["base_url"])),
            timeout=int(api_cfg.get("timeout", DEFAULT_CONFIG["api"]["timeout"])),
            hotkeys_json=str(hotkeys_cfg.get("json", "")),
        )


def parse_temperature(raw: Any, default: float = DEFAULT_TEMPERATURE) -> float:
    """Parse a temperature string, falling back to ``default`` when unusable."""
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value) or value < 0:
        return default
    return value


def parse_max_tokens(raw: Any, default: int = DEFAULT_MAX_TOKENS) -> int:
    """Parse a max-tokens string, falling back to ``default`` unless positive."""
    try:
        value = int(float(str(raw).strip()))
    except (TypeError, ValueError, OverflowError):
        return default
    return value if value > 0 else default


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
    """Best-effort enforcement of private file permissions on POSIX systems."""
    if os.name != "posix" or not path.exists():
        return
    try:
        path.chmod(0o600)
    except OSError as exc:
        LOGGER.warning("Unable to enforce 0600 permissions for %s: %s", path, exc)


def _safe_default_config() -> dict[str, dict[str, Any]]:
    """Return a deep copy of validated default config data."""
    return deepcopy(DEFAULT_CONFIG)


def _validate_config(raw: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Validate merged config and fallback to safe defaults when possible."""
    try:
        config = Config.model_validate(raw)
        return config.model_dump(by_alias=True)
    except ValidationError as exc:
        LOGGER.warning("Configuration validation failed, using safe defaults: %s", exc)
        return _safe_default_config()
    except Exception as exc:  # noqa: BLE001 - unexpected model construction failure.
        raise ConfigValidationError(f"Unable to validate configuration: {exc}") from exc


def _apply_env_credential(config: dict[str, dict[str, Any]]) -> None:
    if config["api"].get("api_key"):
        return
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name, "").strip()
        if value:
            config["api"]["api_key"] = value
            return


def load_config(config_path: Path | None = None) -> dict[str, dict[str, Any]]:
    """
    Load configuration from TOML, merge with defaults, and validate.

    The optional ``config_path`` argument is intended for tests and tooling.
    An empty ``api.api_key`` is filled from the environment when available.
    """
    target_path = config_path or CONFIG_PATH
    ensure_config_dir(target_path.parent)

    raw_data: dict[str, Any] = {}
    if target_path.exists():
        _enforce_private_permissions(target_path)
        try:
            raw_data = tomllib.loads(target_path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            LOGGER.warning("Failed to parse config at %s: %s", target_path, exc)
            raw_data = {}

    merged = (
        _deep_merge(DEFAULT_CONFIG, raw_data)
        if isinstance(raw_data, dict)
        else _safe_default_config()
    )
    config = _validate_config(merged)
    _apply_env_credential(config)
    return config


def load_preferences(config_path: Path | None = None) -> Preferences:
    """Load configuration and return the typed preferences view."""
    return Preferences.from_config(load_config(config_path))
