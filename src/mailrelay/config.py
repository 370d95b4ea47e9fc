"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables, a cached ``get_settings()`` accessor, ``validate_transport_config()``
for the per-email credential check, and a ``validate_credentials()`` startup
gate that enforces valid credentials in production mode.

IMPORTANT: This module has ZERO imports from the ``mailrelay`` package to
prevent circular imports.  Only stdlib, pydantic, pydantic_settings, and
structlog are used.
"""

from __future__ import annotations

import re
import sys
from functools import lru_cache

import structlog
from pydantic import SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()

BOT_TOKEN_PATTERN = re.compile(r"^\d+:[A-Za-z0-9_-]+$")
CHAT_ID_PATTERN = re.compile(r"^(@[A-Za-z0-9_]+|-?\d+)$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    ``SecretStr`` keeps the bot token out of logs and error output.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False
    webhook_port: int = 8000
    sentry_dsn: str = ""

    # -- Telegram (secrets) ----------------------------------------------------
    telegram_bot_token: SecretStr = SecretStr("")
    telegram_channel_id: str = ""
    telegram_api_base: str = "https://api.telegram.org"
    http_timeout_seconds: float = 30.0
    send_max_attempts: int = 3
    telegram_message_limit: int = 4096

    # -- Content ---------------------------------------------------------------
    max_body_length: int = 4000
    max_subject_length: int = 100

    # -- Rate limiting ---------------------------------------------------------
    rate_limit_window_ms: int = 60_000
    max_emails_per_window: int = 10


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # Log only the structured errors list -- never the full exception
        # which may contain raw SecretStr values.
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)


def validate_transport_config(bot_token: str, chat_id: str) -> list[str]:
    """Check presence and shape of the Telegram credentials.

    Args:
        bot_token: The raw bot token, e.g. ``123456:ABC-def_ghi``.
        chat_id: ``@channelname`` or a (possibly negative) numeric id.

    Returns:
        A list of problems; empty when both values are usable.
    """
    errors: list[str] = []

    if not bot_token:
        errors.append("TELEGRAM_BOT_TOKEN is required")
    elif not BOT_TOKEN_PATTERN.match(bot_token):
        errors.append("TELEGRAM_BOT_TOKEN format is invalid")

    if not chat_id:
        errors.append("TELEGRAM_CHANNEL_ID is required")
    elif not CHAT_ID_PATTERN.match(chat_id):
        errors.append("TELEGRAM_CHANNEL_ID must be @name or a numeric id")

    return errors


def validate_credentials(settings: Settings) -> None:
    """Enforce credential validity at startup.

    In **production** mode (``settings.production is True``), the application
    exits with a clear error block if the Telegram credentials are unusable.

    In **development** mode, each problem is logged as a warning and the
    application continues to start; every inbound email will then be
    rejected with a configuration error.

    Args:
        settings: The loaded application settings.
    """
    errors = validate_transport_config(
        settings.telegram_bot_token.get_secret_value(),
        settings.telegram_channel_id,
    )

    if not errors:
        logger.info("credential_validation_passed")
        return

    if settings.production:
        for err in errors:
            logger.error("credential_invalid", detail=err)
        print("\n=== STARTUP FAILED ===", file=sys.stderr)
        print("Invalid Telegram credentials for production mode:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        print("======================\n", file=sys.stderr)
        sys.exit(1)
    else:
        for err in errors:
            logger.warning("credential_invalid_dev", detail=err)
