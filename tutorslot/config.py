from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./tutorslot.db"

    # Application
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Booking defaults (guided booking form)
    DEFAULT_SUBJECT: str = "Mathematics"
    DEFAULT_DURATION_MINUTES: int = 60
    MIN_DURATION_MINUTES: int = 30
    FALLBACK_HOURLY_RATE: Decimal = Decimal("200000")
    ONLINE_LOCATION_LABEL: str = "Online (Zoom / Google Meet)"
    OFFLINE_LOCATION_LABEL: str = "In person"
    # Off unless the product explicitly wants "book for any student" behaviour.
    ALLOW_FIRST_AVAILABLE_STUDENT: bool = False

    # Cancellation policy
    FREE_CANCELLATION_HOURS: int = 12
    LATE_CANCELLATION_FEE_RATE: Decimal = Decimal("0.5")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()
