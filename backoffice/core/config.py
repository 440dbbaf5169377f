"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database
    DATABASE_URL: str = "sqlite:///./backoffice.db"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Logging
    LOG_LEVEL: str = "INFO"

    # GitHub (issue tracker)
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TOKEN: str = ""

    # Labels that categorize tracker issues
    TRACKER_TYPE_A_LABEL: str = "AUGMENT"  # message-metered
    TRACKER_TYPE_B_LABEL: str = "MANUAL"  # fixed price
    # When a re-fetched issue carries a category label, the label beats the saved type
    TRACKER_LABELS_OVERRIDE_CATEGORY: bool = True

    # Pricing defaults
    DEFAULT_AI_MESSAGE_RATE: float = 0.08
    DEFAULT_PROFIT_MARGIN: float = 20.0

    # Alert thresholds
    ALERT_NO_PAYMENT_DAYS: int = 5
    ALERT_HIGH_USAGE_PERCENT: float = 80.0

    # Display currency (secondary currency is a cosmetic conversion only)
    DISPLAY_CURRENCY: str = "USD"
    SECONDARY_CURRENCY: str = ""
    SECONDARY_CURRENCY_RATE: float = 0.0

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def secondary_currency_enabled(self) -> bool:
        return bool(self.SECONDARY_CURRENCY) and self.SECONDARY_CURRENCY_RATE > 0


settings = Settings()
