"""Specialized settings adapters for integrations."""

from __future__ import annotations

from pydantic import BaseModel

from workshop_billing.core.config import get_settings


class RobokassaSettings(BaseModel):
    """Slim view of payment-gateway configuration."""

    merchant_login: str = ""
    password1: str = ""
    password2: str = ""
    password3: str = ""
    hash_algorithm: str = "md5"
    notification_key: str = ""
    notification_algorithms: list[str] = ["RS256"]
    test_mode: bool = False
    timeout_seconds: float = 10.0
    payment_url: str = "https://auth.robokassa.ru/Merchant/Index.aspx"


def get_robokassa_settings() -> RobokassaSettings:
    """Return gateway-specific configuration."""

    settings = get_settings()
    return RobokassaSettings(
        merchant_login=settings.robokassa_merchant_login,
        password1=settings.robokassa_password1,
        password2=settings.robokassa_password2,
        password3=settings.robokassa_password3,
        hash_algorithm=settings.robokassa_hash_algorithm.lower(),
        notification_key=settings.robokassa_notification_key,
        notification_algorithms=settings.notification_algorithms,
        test_mode=settings.robokassa_test_mode,
        timeout_seconds=settings.robokassa_timeout_seconds,
        payment_url=settings.robokassa_payment_url,
    )
