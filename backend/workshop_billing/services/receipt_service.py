"""Second (post-service) fiscal receipts for paid invoices."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from workshop_billing.integrations import RobokassaClient
from workshop_billing.models import Invoice


def _money(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01")))


def build_second_receipt(invoice: Invoice, *, merchant_login: str) -> dict[str, Any]:
    """Return the RoboFiscal payload settling a prepaid invoice."""

    origin_id = invoice.external_id or str(invoice.id)
    total = _money(invoice.amount)
    owner = invoice.owner
    client = {
        key: value
        for key, value in (("email", owner.email), ("phone", owner.phone_number))
        if value
    }
    return {
        "merchantId": merchant_login,
        "id": f"{origin_id}-2",
        "originId": origin_id,
        "operation": "sell",
        "sno": "osn",
        "url": "",
        "total": total,
        "items": [
            {
                "name": item.name,
                "quantity": item.quantity,
                "sum": _money(item.amount),
                "tax": "none",
                "payment_method": "full_payment",
                "payment_object": "service",
            }
            for item in invoice.items
        ],
        "client": client,
        "payments": [{"type": 2, "sum": total}],
        "vats": [{"type": "none", "sum": 0}],
    }


async def issue_second_receipt(invoice: Invoice, *, gateway: RobokassaClient) -> None:
    """Send the post-service receipt; raises RobokassaClientError on rejection."""

    payload = build_second_receipt(invoice, merchant_login=gateway.merchant_login)
    await gateway.attach_second_receipt(payload)
