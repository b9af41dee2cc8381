from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "MinutePark API"
    debug: bool = False
    environment: str = "production"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./minutepark.db"
    db_connect_timeout_seconds: float = 15.0
    db_connect_retries: int = 3
    db_retry_initial_delay_seconds: float = 1.0

    # Security
    secret_key: str = "change-this-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    refresh_token_expire_days: int = 7

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8081"]

    # Billing
    rate_per_minute: float = 1.0
    currency: str = "HNL"

    # QR payloads
    user_qr_prefix: str = "PARKING_USER_"
    session_qr_prefix: str = "PARKING_"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
