"""Application configuration via pydantic settings."""

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application configuration."""

    app_env: str = Field("local", alias="APP_ENV")
    app_name: str = "Craft Workshops Billing API"
    api_v1_prefix: str = "/api/v1"

    database_url: str = Field(..., alias="DATABASE_URL")
    sync_database_url: str | None = Field(default=None, alias="SYNC_DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    robokassa_merchant_login: str = Field("", alias="ROBOKASSA_MERCHANT_LOGIN")
    robokassa_password1: str = Field("", alias="ROBOKASSA_PASSWORD1")
    robokassa_password2: str = Field("", alias="ROBOKASSA_PASSWORD2")
    robokassa_password3: str = Field("", alias="ROBOKASSA_PASSWORD3")
    robokassa_hash_algorithm: str = Field("md5", alias="ROBOKASSA_HASH_ALGORITHM")
    robokassa_notification_key: str = Field("", alias="ROBOKASSA_NOTIFICATION_KEY")
    robokassa_notification_algorithms: str = Field(
        "RS256", alias="ROBOKASSA_NOTIFICATION_ALGORITHMS"
    )
    robokassa_test_mode: bool = Field(default=False, alias="ROBOKASSA_TEST_MODE")
    robokassa_timeout_seconds: float = Field(10.0, alias="ROBOKASSA_TIMEOUT_SECONDS")
    robokassa_payment_url: str = Field(
        "https://auth.robokassa.ru/Merchant/Index.aspx", alias="ROBOKASSA_PAYMENT_URL"
    )

    payment_success_url: str = Field(
        "http://localhost:5173/payment/success", alias="PAYMENT_SUCCESS_URL"
    )
    payment_fail_url: str = Field(
        "http://localhost:5173/payment/fail", alias="PAYMENT_FAIL_URL"
    )

    kafka_bootstrap_servers: str | None = Field(
        default=None, alias="KAFKA_BOOTSTRAP_SERVERS"
    )
    kafka_invoice_topic: str = Field("invoice", alias="KAFKA_INVOICE_TOPIC")

    refund_cutoff_hours: int = Field(3, alias="REFUND_CUTOFF_HOURS")

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        alias="CORS_ALLOW_ORIGINS",
    )
    cors_allow_credentials: bool = Field(True, alias="CORS_ALLOW_CREDENTIALS")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[3] / ".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def notification_algorithms(self) -> list[str]:
        """Return the JWS algorithms accepted for gateway notifications."""
        return [
            item.strip()
            for item in self.robokassa_notification_algorithms.split(",")
            if item.strip()
        ]

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # type: ignore[call-arg]
