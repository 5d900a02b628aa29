"""Verified payment-gateway notification shapes."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUCCESS_STATE = "OK"


class ClassicNotification(BaseModel):
    """Fields of a notification signed with the field-concatenation hash."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    channel: Literal["classic"] = "classic"
    amount: Decimal = Field(alias="OutSum")
    external_id: str = Field(alias="InvId", min_length=1)
    payment_method: str | None = Field(default=None, alias="PaymentMethod")
    currency_label: str | None = Field(default=None, alias="IncCurrLabel")
    custom_params: dict[str, str] = Field(default_factory=dict)


class TokenNotification(BaseModel):
    """Data section of a verified JWS notification."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    channel: Literal["token"] = "token"
    state: str
    external_id: str = Field(alias="invId", min_length=1)
    operation_key: str | None = Field(default=None, alias="opKey")
    payment_method: str | None = Field(default=None, alias="paymentMethod")
    amount_received: Decimal | None = Field(default=None, alias="incSum")
    shop: str | None = None

    @field_validator("external_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def succeeded(self) -> bool:
        return self.state == SUCCESS_STATE


VerifiedNotification = Annotated[
    Union[ClassicNotification, TokenNotification], Field(discriminator="channel")
]


class TokenNotificationBody(BaseModel):
    """Inbound JSON body of the token notification channel."""

    token: str | None = None


__all__ = [
    "ClassicNotification",
    "SUCCESS_STATE",
    "TokenNotification",
    "TokenNotificationBody",
    "VerifiedNotification",
]
