"""Robokassa HTTP API wrapper."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import xml.etree.ElementTree as ElementTree
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
from jose import jwt

from workshop_billing.core.settings import RobokassaSettings
from workshop_billing.security.signatures import sign_fields

logger = logging.getLogger(__name__)

OP_STATE_URL = (
    "https://auth.robokassa.ru/Merchant/WebService/Service.asmx/OpStateExt"
)
REFUND_CREATE_URL = "https://services.robokassa.ru/RefundService/Refund/Create"
REFUND_STATE_URL = "https://services.robokassa.ru/RefundService/Refund/GetState"
RECEIPT_ATTACH_URL = "https://ws.roboxchange.com/RoboFiscal/Receipt/Attach"

STATE_PAID = 100


@dataclass(slots=True)
class OperationState:
    """Result of an OpStateExt lookup."""

    result_code: int
    description: str | None = None
    state_code: int | None = None
    operation_key: str | None = None
    amount: Decimal | None = None

    @property
    def found(self) -> bool:
        return self.result_code == 0

    @property
    def paid(self) -> bool:
        return self.found and self.state_code == STATE_PAID


@dataclass(slots=True)
class RefundLine:
    """Line item sent with a refund request."""

    name: str
    quantity: int
    unit_price: Decimal


@dataclass(slots=True)
class RefundState:
    """Gateway-side state of a refund request."""

    request_id: str
    label: str
    amount: Decimal | None = None


@dataclass(slots=True)
class PaymentForm:
    """Signed form that sends the payer to the hosted payment page."""

    url: str
    fields: dict[str, str] = field(default_factory=dict)


class RobokassaClientError(RuntimeError):
    """Raised when a Robokassa call fails or is rejected."""


def _format_amount(amount: Decimal) -> str:
    return str(amount.quantize(Decimal("0.01")))


def _to_decimal(value: Any) -> Decimal | None:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _strip_namespaces(root: ElementTree.Element) -> None:
    for node in root.iter():
        if "}" in node.tag:
            node.tag = node.tag.split("}", 1)[1]


class RobokassaClient:
    """Async client for the merchant, refund and fiscal endpoints."""

    def __init__(
        self,
        settings: RobokassaSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=settings.timeout_seconds)

    @property
    def merchant_login(self) -> str:
        return self._settings.merchant_login

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise RobokassaClientError("Robokassa request timed out") from exc
        except httpx.HTTPError as exc:
            raise RobokassaClientError(f"Robokassa request failed: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise RobokassaClientError(
                f"Unexpected Robokassa response ({response.status_code})"
            ) from exc
        if not isinstance(payload, dict):
            raise RobokassaClientError("Unexpected Robokassa response shape")
        return payload

    def build_payment_form(
        self,
        *,
        external_id: str,
        amount: Decimal,
        description: str,
        custom_params: dict[str, str] | None = None,
    ) -> PaymentForm:
        """Return the signed hosted-payment form for an invoice."""

        settings = self._settings
        out_sum = _format_amount(amount)
        params = dict(custom_params or {})
        signature = sign_fields(
            [settings.merchant_login, out_sum, external_id],
            settings.password1,
            params,
            algorithm=settings.hash_algorithm,
        )
        fields = {
            "MerchantLogin": settings.merchant_login,
            "OutSum": out_sum,
            "InvId": external_id,
            "Description": description,
            "SignatureValue": signature,
            **params,
        }
        if settings.test_mode:
            fields["IsTest"] = "1"
        return PaymentForm(url=settings.payment_url, fields=fields)

    async def get_operation_state(self, external_id: str) -> OperationState:
        """Query OpStateExt for the payment made against ``external_id``."""

        settings = self._settings
        signature = sign_fields(
            [settings.merchant_login, external_id],
            settings.password2,
            algorithm=settings.hash_algorithm,
        )
        response = await self._send(
            "GET",
            OP_STATE_URL,
            params={
                "MerchantLogin": settings.merchant_login,
                "InvoiceID": external_id,
                "Signature": signature,
            },
        )
        if response.status_code >= 400:
            raise RobokassaClientError(
                f"Operation state query failed ({response.status_code})"
            )
        try:
            root = ElementTree.fromstring(response.text)
        except ElementTree.ParseError as exc:
            raise RobokassaClientError("Malformed operation state response") from exc
        _strip_namespaces(root)

        try:
            result_code = int(root.findtext("Result/Code", default="-1"))
            state_text = root.findtext("State/Code")
            state_code = int(state_text) if state_text else None
        except ValueError as exc:
            raise RobokassaClientError("Malformed operation state response") from exc
        return OperationState(
            result_code=result_code,
            description=root.findtext("Result/Description"),
            state_code=state_code,
            operation_key=root.findtext("Info/OpKey") or None,
            amount=_to_decimal(root.findtext("Info/OutSum")),
        )

    async def create_refund(
        self,
        *,
        operation_key: str,
        amount: Decimal,
        lines: list[RefundLine] | None = None,
    ) -> str:
        """Submit a refund request and return the gateway request id."""

        claims: dict[str, Any] = {
            "OpKey": operation_key,
            "RefundSum": float(_format_amount(amount)),
        }
        if lines:
            claims["InvoiceItems"] = [
                {
                    "Name": line.name,
                    "Quantity": line.quantity,
                    "Cost": float(_format_amount(line.unit_price)),
                    "Tax": "none",
                    "PaymentMethod": "full_prepayment",
                    "PaymentObject": "service",
                }
                for line in lines
            ]
        token = jwt.encode(claims, self._settings.password3, algorithm="HS256")
        response = await self._send(
            "POST",
            REFUND_CREATE_URL,
            content=token,
            headers={"Content-Type": "application/json"},
        )
        payload = self._json(response)
        request_id = payload.get("requestId")
        if not payload.get("success") or not request_id:
            raise RobokassaClientError(
                str(payload.get("message") or "Refund request was rejected")
            )
        logger.info(
            "refund request %s created for operation %s", request_id, operation_key
        )
        return str(request_id)

    async def get_refund_state(self, request_id: str) -> RefundState:
        """Return the gateway-reported state of a refund request."""

        response = await self._send("GET", REFUND_STATE_URL, params={"id": request_id})
        payload = self._json(response)
        label = payload.get("label")
        if not label:
            raise RobokassaClientError(
                str(payload.get("message") or "Refund state is unavailable")
            )
        return RefundState(
            request_id=str(payload.get("requestId") or request_id),
            label=str(label).lower(),
            amount=_to_decimal(payload.get("amount")),
        )

    async def attach_second_receipt(self, receipt: dict[str, Any]) -> None:
        """Send a post-service fiscal receipt for an already paid invoice."""

        encoded = _b64(json.dumps(receipt, ensure_ascii=False).encode("utf-8"))
        digest = hashlib.md5(
            f"{encoded}{self._settings.password1}".encode("utf-8")
        ).hexdigest()
        response = await self._send(
            "POST",
            RECEIPT_ATTACH_URL,
            content=f"{encoded}.{_b64(digest.encode('ascii'))}",
            headers={"Content-Type": "text/plain"},
        )
        payload = self._json(response)
        if str(payload.get("ResultCode")) != "0":
            raise RobokassaClientError(
                str(payload.get("ResultDescription") or "Receipt was rejected")
            )


__all__ = [
    "OperationState",
    "PaymentForm",
    "RefundLine",
    "RefundState",
    "RobokassaClient",
    "RobokassaClientError",
]
