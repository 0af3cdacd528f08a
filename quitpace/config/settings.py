import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues."""
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "quitpace.db"
    abs_path = db_path.resolve()
    db_url = f"sqlite:///{abs_path}"
    logger.debug(f"Using default database path: {db_url}")
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    timezone: str | None = Field(
        default=None,
        validation_alias="QUITPACE_TIMEZONE",
        description="IANA timezone used for calendar days and the active window (default: system local)",
    )

    # Plan metrics
    active_window_seconds_per_day: int = Field(
        default=16 * 3600,
        validation_alias="ACTIVE_WINDOW_SECONDS_PER_DAY",
        description="Daily awake-time budget the cigarette allowance is spread over",
    )
    max_interval_seconds: int = Field(
        default=24 * 3600,
        validation_alias="MAX_INTERVAL_SECONDS",
        description="Upper bound on the wait interval, also the sentinel once the target reaches zero",
    )

    # Countdown
    tick_interval_seconds: float = Field(default=1.0, validation_alias="TICK_INTERVAL_SECONDS")
    enforce_active_window: bool = Field(
        default=False,
        validation_alias="ENFORCE_ACTIVE_WINDOW",
        description="Pause the countdown and reminders outside the plan's active window",
    )
    sort_event_log: bool = Field(
        default=False,
        validation_alias="SORT_EVENT_LOG",
        description="Sort the event log by timestamp instead of trusting insertion order",
    )

    # Reminders
    early_buffer_seconds: int = Field(
        default=27,
        validation_alias="REMINDER_EARLY_BUFFER_SECONDS",
        description="Seconds subtracted from the countdown target to absorb platform delivery lag",
    )
    reminder_title: str = Field(default="Almost time!", validation_alias="REMINDER_TITLE")
    reminder_body: str = Field(
        default="Your wait interval is about to end.",
        validation_alias="REMINDER_BODY",
    )

    # Persistence
    storage_retry_attempts: int = Field(default=2, validation_alias="STORAGE_RETRY_ATTEMPTS")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

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

    @field_validator("active_window_seconds_per_day", "max_interval_seconds")
    @classmethod
    def validate_positive_budget(cls, value: int) -> int:
        """Reject budgets that would make the wait interval zero or negative."""
        if value <= 0:
            raise ValueError(f"Time budgets must be positive, got {value}")
        return value

    @field_validator("early_buffer_seconds", "storage_retry_attempts")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"Value must not be negative, got {value}")
        return value

    @field_validator("tick_interval_seconds")
    @classmethod
    def validate_tick_interval(cls, value: float) -> float:
        if value <= 0:
            logger.warning(f"Invalid TICK_INTERVAL_SECONDS '{value}'. Defaulting to 1.0.")
            return 1.0
        return value


settings = Settings()
