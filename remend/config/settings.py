import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CATALOG_PATH = Path(__file__).parent.parent / "exercises" / "data" / "catalog.yaml"


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues.

    ⚠️ SQLite is for local development and tests only. Set DATABASE_URL to a
    PostgreSQL connection string for anything that must survive a rebuild.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "remend.db"
    abs_path = db_path.resolve()
    db_url = f"sqlite:///{abs_path}"
    logger.warning(f"⚠️ Using SQLite database (LOCAL DEV ONLY): {db_url}")
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")

    ai_enabled: bool = Field(
        default=False,
        validation_alias="AI_ENABLED",
        description="Enable LLM advice formatting (canned fallback when disabled)",
    )
    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    advice_model: str = Field(default="gpt-4o-mini", validation_alias="ADVICE_MODEL")
    advice_temperature: float = Field(default=0.3, validation_alias="ADVICE_TEMPERATURE")
    advice_max_tokens: int = Field(default=400, validation_alias="ADVICE_MAX_TOKENS")
    advice_timeout_seconds: float = Field(
        default=10.0,
        validation_alias="ADVICE_TIMEOUT_SECONDS",
        description="Formatter deadline; a timeout is handled like any formatter error",
    )

    advice_cache_ttl_seconds: float = Field(default=5 * 60, validation_alias="ADVICE_CACHE_TTL_SECONDS")
    advice_cache_max_entries: int = Field(default=1000, validation_alias="ADVICE_CACHE_MAX_ENTRIES")
    advice_cache_sweep_every: int = Field(
        default=100,
        validation_alias="ADVICE_CACHE_SWEEP_EVERY",
        description="Sweep expired advice entries once per this many insertions",
    )

    catalog_seed_path: Path = Field(default=DEFAULT_CATALOG_PATH, validation_alias="CATALOG_SEED_PATH")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("advice_cache_max_entries", "advice_cache_sweep_every")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Cache bounds must be at least 1."""
        if value < 1:
            logger.warning(f"Advice cache bound must be >= 1, got {value}. Using 1.")
            return 1
        return value

    @field_validator("openai_api_key")
    @classmethod
    def validate_openai_key(cls, value: str) -> str:
        """Warn when the LLM formatter cannot authenticate.

        An empty key is allowed: advice falls back to canned messages.
        """
        if not value and os.getenv("AI_ENABLED", "").lower() in {"1", "true", "yes"}:
            logger.warning("⚠️ AI_ENABLED is set but OPENAI_API_KEY is empty. Advice will use canned fallbacks.")
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
