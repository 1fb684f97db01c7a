"""Application configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from coopbill.core.models import FirstReadingPolicy, SplitMode


class Settings(BaseSettings):
    """Loads and validates application settings from the environment."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # What a meter's first ever reading means when no earlier reading exists.
    FIRST_READING_POLICY: FirstReadingPolicy = FirstReadingPolicy.FULL_READING
    RECONCILIATION_SPLIT: SplitMode = SplitMode.EQUAL
    INVOICE_DUE_MONTHS: int = 4

    SCHEDULER_TIMEZONE: str = "Europe/Stockholm"
    OVERDUE_CHECK_HOUR: int = 9


settings = Settings()
