"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FARM_FINANCE_",
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./farm_finance.db"

    # External Services
    host_webhook_url: str = "http://localhost:8002/host-events"

    # Service
    service_name: str = "farm-finance"
    log_level: str = "INFO"

    # Credit
    credit_enabled: bool = True
    starting_credit_score: int = 650

    # Financing
    missed_payments_to_default: int = 3
    default_term_months: int = 60

    # Vehicle sales
    hours_per_month: int = 24
    offer_expiration_hours: int = 48
    decline_penalty_hours: int = 24
    max_listings_per_farm: int = 3

    # HTTP Client
    http_timeout_seconds: float = 5.0
    webhook_max_retries: int = 5
    webhook_backoff_base: float = 1.0  # Exponential backoff base in seconds


settings = Settings()
