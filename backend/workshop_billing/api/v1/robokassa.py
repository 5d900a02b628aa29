"""Robokassa notification receivers and browser return pages."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from pydantic import ValidationError

from workshop_billing.api.deps import DbSession, Gateway, ObserverDep, Publisher
from workshop_billing.core.config import get_settings
from workshop_billing.core.settings import get_robokassa_settings
from workshop_billing.schemas.notifications import TokenNotificationBody
from workshop_billing.security import signatures
from workshop_billing.services import payments_service
from workshop_billing.services.results import Failure

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/robokassa", tags=["robokassa"])


async def _gateway_fields(request: Request) -> dict[str, str]:
    """Merge query-string and form fields of a gateway request."""

    fields = dict(request.query_params)
    if request.method == "POST":
        form = await request.form()
        fields.update(
            {key: value for key, value in form.items() if isinstance(value, str)}
        )
    return fields


def _return_url(base: str, fields: dict[str, str]) -> str:
    query = urlencode(
        {"invoiceId": fields.get("InvId", ""), "amount": fields.get("OutSum", "")}
    )
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}{query}"


@router.api_route(
    "/result", methods=["GET", "POST"], response_class=PlainTextResponse
)
async def handle_result(
    request: Request,
    session: DbSession,
    gateway: Gateway,
    publisher: Publisher,
    observer: ObserverDep,
) -> PlainTextResponse:
    """Primary server-to-server payment notification.

    Robokassa expects the literal body ``OK<InvId>``; anything else is
    treated as a failed delivery and retried. Once the signature checks out
    the notification is acknowledged with 200 even when it is not applied.
    """
    settings = get_robokassa_settings()
    fields = await _gateway_fields(request)
    notification = signatures.verify_classic(
        fields, settings.password2, algorithm=settings.hash_algorithm
    )
    if notification is None:
        logger.warning(
            "Rejected result notification with bad signature for InvId=%s",
            fields.get("InvId"),
        )
        return PlainTextResponse("bad sign", status_code=status.HTTP_400_BAD_REQUEST)

    outcome = await payments_service.handle_notification(
        session,
        notification,
        raw=fields,
        gateway=gateway,
        publisher=publisher,
        observer=observer,
    )
    if isinstance(outcome, Failure):
        logger.warning(
            "Result notification for InvId=%s not applied: %s",
            fields.get("InvId"),
            outcome.message,
        )
        return PlainTextResponse(outcome.message)
    return PlainTextResponse(f"OK{outcome.value.external_id}")


@router.post("/result/token")
async def handle_token_result(
    request: Request,
    session: DbSession,
    gateway: Gateway,
    publisher: Publisher,
    observer: ObserverDep,
) -> JSONResponse:
    """Secondary JWS payment notification."""
    try:
        raw: Any = await request.json()
        body = TokenNotificationBody.model_validate(raw)
    except (ValueError, ValidationError):
        body = TokenNotificationBody()
    if not body.token:
        return JSONResponse(
            {"error": "Token is required"}, status_code=status.HTTP_400_BAD_REQUEST
        )

    settings = get_robokassa_settings()
    notification = signatures.verify_token(
        body.token, settings.notification_key, settings.notification_algorithms
    )
    if notification is None:
        logger.warning("Rejected token notification with invalid signature")
        return JSONResponse(
            {"error": "Invalid token"}, status_code=status.HTTP_400_BAD_REQUEST
        )

    outcome = await payments_service.handle_notification(
        session,
        notification,
        raw=notification.model_dump(mode="json", by_alias=True),
        gateway=gateway,
        publisher=publisher,
        observer=observer,
    )
    if isinstance(outcome, Failure):
        logger.warning("Token notification not applied: %s", outcome.message)
        return JSONResponse({"error": outcome.message})
    if outcome.value.payment_failed:
        return JSONResponse({"status": "payment_failed"})
    return JSONResponse({"status": "success"})


@router.api_route("/success", methods=["GET", "POST"], response_model=None)
async def payment_success(request: Request) -> RedirectResponse | PlainTextResponse:
    """Browser return after payment; advisory only, state is not changed."""
    settings = get_robokassa_settings()
    fields = await _gateway_fields(request)
    notification = signatures.verify_classic(
        fields, settings.password1, algorithm=settings.hash_algorithm
    )
    if notification is None:
        return PlainTextResponse(
            "Invalid signature", status_code=status.HTTP_400_BAD_REQUEST
        )
    return RedirectResponse(
        _return_url(get_settings().payment_success_url, fields),
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.api_route("/fail", methods=["GET", "POST"], response_model=None)
async def payment_fail(request: Request) -> RedirectResponse:
    """Browser return after a cancelled or failed payment."""
    fields = await _gateway_fields(request)
    return RedirectResponse(
        _return_url(get_settings().payment_fail_url, fields),
        status_code=status.HTTP_303_SEE_OTHER,
    )
