"""Configuration helpers for the image chat backend."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from utils.errors import StartupConfigurationError

# Load .env if present to simplify local development.
load_dotenv()

DEFAULT_MODEL_NAME = "gemini-1.5-flash"
DEFAULT_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


def _require_env(key: str) -> str:
    """Return a non-blank environment variable or raise a startup error."""
    value = os.getenv(key)
    if value is None or not value.strip():
        raise StartupConfigurationError(f"{key} is not defined in environment variables.")
    return value.strip()


def _int_from_env(key: str, default: int) -> int:
    """Parse a positive integer from the environment."""
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise StartupConfigurationError(f"{key} must be an integer, got {raw!r}.") from exc
    if value <= 0:
        raise StartupConfigurationError(f"{key} must be positive, got {value}.")
    return value


@dataclass(frozen=True)
class Settings:
    """Holds configuration derived from environment variables."""

    api_key: str
    model_name: str = DEFAULT_MODEL_NAME
    api_base_url: str = DEFAULT_API_BASE_URL
    log_level: str = "INFO"
    app_host: str = "127.0.0.1"
    app_port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment.

        Raises:
            StartupConfigurationError: If API_KEY is missing or a value is malformed.
        """
        return cls(
            api_key=_require_env("API_KEY"),
            model_name=os.getenv("MODEL_NAME") or DEFAULT_MODEL_NAME,
            api_base_url=os.getenv("API_BASE_URL") or DEFAULT_API_BASE_URL,
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
            app_host=os.getenv("APP_HOST") or "127.0.0.1",
            app_port=_int_from_env("APP_PORT", 8000),
        )
