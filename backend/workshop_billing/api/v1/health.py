"""Health check endpoints."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request
from sqlalchemy.engine import make_url

from workshop_billing.core.config import get_settings
from workshop_billing.integrations import DisabledEventPublisher

router = APIRouter()


@router.get("", summary="Service health status")
async def healthcheck(request: Request) -> dict[str, Any]:
    """Return application health metadata and payment integration mode."""
    settings = get_settings()
    publisher = getattr(request.app.state, "event_publisher", None)
    return {
        "status": "ok",
        "service": settings.app_name,
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": settings.app_env,
        "database": make_url(settings.database_url).get_backend_name(),
        "gateway_test_mode": settings.robokassa_test_mode,
        "events_enabled": publisher is not None
        and not isinstance(publisher, DisabledEventPublisher),
    }
