"""Application configuration with environment variables."""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database
    DATABASE_URL: str

    # Internal scheduled endpoints (cron jobs)
    INTERNAL_SECRET: str = ""  # Secret for /internal/scheduled/* endpoints

    # Calendar reminders
    REMINDER_WINDOW_MINUTES: int = 5  # Grace window for firing a due reminder
    REMINDER_LOOKBACK_HOURS: int = 24  # Ignore events that started before this

    # Personal injury damages
    IRS_MILEAGE_RATE: Decimal = Decimal("0.67")  # USD per mile

    # Intake
    HIGH_PRIORITY_THRESHOLD: int = 70

    # AI document generation
    AI_PROVIDER: str = "openai"  # openai | gemini | anthropic
    AI_API_KEY: str = ""
    AI_MODEL: str = ""  # Empty = provider default
    AI_TIMEOUT_SECONDS: float = 60.0

    # Worker
    WORKER_POLL_INTERVAL: int = 10
    WORKER_BATCH_SIZE: int = 10
    WORKER_RETRY_BACKOFF_SECONDS: int = 30  # Delay per failed attempt before retry

    # Logging
    LOG_LEVEL: str = "INFO"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    @property
    def is_dev(self) -> bool:
        return self.ENV == "dev"

    @property
    def ai_enabled(self) -> bool:
        """AI generation is available only with a configured key."""
        return bool(self.AI_API_KEY)


settings = Settings()
