"""
Centralized configuration with environment variable overrides.

Model settings, calendar defaults, directory connection and dialogue
policies are all configurable here. Nothing is hardcoded in the
controller or the adapters.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from agenda_assistant.logging_context import UserIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag (true/false, yes/no, on/off, 1/0)."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class ModelConfig:
    """Extraction model settings."""

    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    llm_temperature: float = _safe_float("LLM_TEMPERATURE", "0.0")
    extraction_timeout_sec: float = _safe_float("EXTRACTION_TIMEOUT", "15.0")
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")


@dataclass(frozen=True)
class CalendarConfig:
    """Calendar provider settings and event defaults."""

    timezone: str = os.getenv("CALENDAR_TIMEZONE", "America/Sao_Paulo")
    calendar_id: str = os.getenv("CALENDAR_ID", "primary")
    default_duration_minutes: int = _safe_int("DEFAULT_DURATION_MINUTES", "60")
    dispatch_timeout_sec: float = _safe_float("DISPATCH_TIMEOUT", "15.0")
    token_file: str = os.getenv("GOOGLE_TOKEN_FILE", "token.json")


@dataclass(frozen=True)
class DirectoryConfig:
    """Contact directory connection settings."""

    database_url: str = os.getenv("DATABASE_URL", "")
    echo_sql: bool = _safe_bool("DATABASE_ECHO", "false")


@dataclass(frozen=True)
class DialogueConfig:
    """Policies for the per-user scheduling dialogue."""

    draft_ttl_minutes: int = _safe_int("DRAFT_TTL_MINUTES", "30")
    drop_unresolved_guests: bool = _safe_bool("DROP_UNRESOLVED_GUESTS", "true")
    save_contact_clears_draft: bool = _safe_bool("SAVE_CONTACT_CLEARS_DRAFT", "true")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    model: ModelConfig = field(default_factory=ModelConfig)
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    directory: DirectoryConfig = field(default_factory=DirectoryConfig)
    dialogue: DialogueConfig = field(default_factory=DialogueConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    assistant_name: str = os.getenv("ASSISTANT_NAME", "Agenda")
    mock_services: bool = _safe_bool("MOCK_SERVICES", "false")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not 0.0 <= config.model.llm_temperature <= 2.0:
        raise ValueError(
            f"LLM_TEMPERATURE must be between 0.0 and 2.0, got {config.model.llm_temperature}"
        )
    if config.model.extraction_timeout_sec <= 0:
        raise ValueError(
            f"EXTRACTION_TIMEOUT must be > 0, got {config.model.extraction_timeout_sec}"
        )
    if config.calendar.dispatch_timeout_sec <= 0:
        raise ValueError(
            f"DISPATCH_TIMEOUT must be > 0, got {config.calendar.dispatch_timeout_sec}"
        )
    if config.calendar.default_duration_minutes < 1:
        raise ValueError(
            "DEFAULT_DURATION_MINUTES must be >= 1, "
            f"got {config.calendar.default_duration_minutes}"
        )
    if not config.calendar.timezone.strip():
        raise ValueError("CALENDAR_TIMEZONE must not be empty")
    if config.dialogue.draft_ttl_minutes < 0:
        raise ValueError(
            f"DRAFT_TTL_MINUTES must be >= 0, got {config.dialogue.draft_ttl_minutes}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s [%(user_id)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, UserIdFilter) for f in handler.filters):
            handler.addFilter(UserIdFilter())
    logger.info("Configuration loaded for '%s'", config.assistant_name)
    return config


# Singleton instance
settings = load_config()
