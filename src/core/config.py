"""Configuration management for racitrack."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Datastore Configuration
    sqlite_db_path: str = Field(default="./data/racitrack.db", description="SQLite database file path")
    transaction_timeout_seconds: float = Field(
        default=10.0, description="Upper bound on a single write transaction (seconds)"
    )

    # Session Configuration
    secret_key: str = Field(
        default="dev-secret-key-change-me", description="Shared secret used to verify identity provider tokens"
    )
    session_max_age_seconds: int = Field(default=86400, description="Maximum age of a session token (seconds)")
    environment: str = Field(default="development", description="Deployment environment name")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Task Lifecycle Configuration
    lock_terminal_statuses: bool = Field(
        default=False,
        description="Forbid transitions out of completed/failed (default keeps any-to-any transitions)",
    )
    due_soon_window_hours: int = Field(default=24, description="Window for due-soon notifications (hours)")

    # Recurring Instance Generation
    enable_recurring_generation: bool = Field(
        default=True, description="Enable/disable automatic instance generation for recurring tasks"
    )
    recurring_generation_interval_minutes: int = Field(
        default=15, description="How often the recurring instance generator runs (minutes)"
    )

    @property
    def is_production(self) -> bool:
        """Whether the service runs in production (secure cookies, no debug detail)."""
        return self.environment.lower() == "production"


# Application Constants
class Constants:
    """Application-wide constants."""

    # Pagination Defaults
    MAX_PER_PAGE_LIMIT: int = 1000  # Page size for full-collection reads

    # Read Retries
    READ_RETRY_ATTEMPTS: int = 3
    READ_RETRY_BASE_DELAY_SECONDS: float = 0.05

    # Job Tracker Configuration
    TRACKER_DEAD_LETTER_QUEUE_MAXLEN: int = 100  # Max items in dead letter queue
    JOB_MAX_RETRIES: int = 3
    JOB_CONSECUTIVE_FAILURE_THRESHOLD: int = 3

    # Scheduled Job Names
    RECURRING_INSTANCES_JOB: str = "recurring_instances"

    # Task Templates
    MIN_TITLE_LENGTH: int = 3
    MAX_TITLE_LENGTH: int = 200


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
