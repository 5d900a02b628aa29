"""Tests for post-service fiscal receipts."""

from __future__ import annotations

import base64
import json
import uuid
from decimal import Decimal

import httpx
import pytest
from pytest_httpx import HTTPXMock

from workshop_billing.core.settings import get_robokassa_settings
from workshop_billing.integrations import RobokassaClient, RobokassaClientError
from workshop_billing.integrations.robokassa_client import RECEIPT_ATTACH_URL
from workshop_billing.models import (
    Invoice,
    InvoiceItem,
    InvoiceItemKind,
    InvoiceStatus,
    User,
    UserRole,
)
from workshop_billing.services import receipt_service


def _invoice(phone_number: str | None = "+79990000001") -> Invoice:
    owner = User(
        id=uuid.uuid4(),
        email="parent@example.com",
        full_name="Irina Parent",
        phone_number=phone_number,
        role=UserRole.PARENT,
    )
    return Invoice(
        id=uuid.uuid4(),
        owner_id=owner.id,
        owner=owner,
        workshop_id=uuid.uuid4(),
        external_id="1760000000000",
        amount=Decimal("3600.00"),
        status=InvoiceStatus.PAID,
        items=[
            InvoiceItem(
                position=0,
                kind=InvoiceItemKind.STYLE,
                catalog_id="classic",
                name="Classic clay mug",
                quantity=2,
                unit_price=Decimal("1500.00"),
                amount=Decimal("3000.00"),
            ),
            InvoiceItem(
                position=1,
                kind=InvoiceItemKind.OPTION,
                catalog_id="gift-box",
                name="Gift box",
                quantity=2,
                unit_price=Decimal("300.00"),
                amount=Decimal("600.00"),
            ),
        ],
    )


def _decode_segment(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def test_second_receipt_references_the_original_payment() -> None:
    receipt = receipt_service.build_second_receipt(
        _invoice(), merchant_login="craft-shop"
    )

    assert receipt["merchantId"] == "craft-shop"
    assert receipt["id"] == "1760000000000-2"
    assert receipt["originId"] == "1760000000000"
    assert receipt["operation"] == "sell"
    assert receipt["total"] == 3600.0
    assert [item["sum"] for item in receipt["items"]] == [3000.0, 600.0]
    assert all(item["payment_method"] == "full_payment" for item in receipt["items"])
    assert receipt["client"] == {
        "email": "parent@example.com",
        "phone": "+79990000001",
    }
    assert receipt["payments"] == [{"type": 2, "sum": 3600.0}]


def test_second_receipt_omits_missing_phone() -> None:
    receipt = receipt_service.build_second_receipt(
        _invoice(phone_number=None), merchant_login="craft-shop"
    )

    assert receipt["client"] == {"email": "parent@example.com"}


@pytest.mark.asyncio
async def test_issue_second_receipt_posts_signed_payload(
    httpx_mock: HTTPXMock,
) -> None:
    httpx_mock.add_response(
        url=RECEIPT_ATTACH_URL, method="POST", json={"ResultCode": "0"}
    )
    client = RobokassaClient(get_robokassa_settings())
    try:
        await receipt_service.issue_second_receipt(_invoice(), gateway=client)
    finally:
        await client.aclose()

    request = httpx_mock.get_request(url=RECEIPT_ATTACH_URL)
    assert request is not None
    body_segment, _signature_segment = request.content.decode().split(".")
    payload = json.loads(_decode_segment(body_segment))
    assert payload["id"] == "1760000000000-2"
    assert payload["total"] == 3600.0


@pytest.mark.asyncio
async def test_issue_second_receipt_raises_on_rejection(
    httpx_mock: HTTPXMock,
) -> None:
    httpx_mock.add_response(
        url=RECEIPT_ATTACH_URL,
        method="POST",
        json={"ResultCode": "2", "ResultDescription": "Duplicate receipt"},
    )
    async with httpx.AsyncClient() as http_client:
        client = RobokassaClient(get_robokassa_settings(), http_client=http_client)
        with pytest.raises(RobokassaClientError, match="Duplicate receipt"):
            await receipt_service.issue_second_receipt(_invoice(), gateway=client)
