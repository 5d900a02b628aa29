"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

import aiokafka
from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from workshop_billing.api import api_router
from workshop_billing.core.config import get_settings
from workshop_billing.db.session import dispose_engine
from workshop_billing.integrations import KafkaEventPublisher
from workshop_billing.security.logging_filters import SensitiveFilter

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    producer = None
    if settings.kafka_bootstrap_servers:
        producer = aiokafka.AIOKafkaProducer(
            bootstrap_servers=settings.kafka_bootstrap_servers
        )
        try:
            await producer.start()
        except Exception:  # pragma: no cover - broker unavailable at startup
            logger.exception("Failed to start Kafka producer; events disabled")
            producer = None
        else:
            app.state.event_publisher = KafkaEventPublisher(
                producer, settings.kafka_invoice_topic
            )
    try:
        yield
    finally:
        if producer is not None:
            await producer.stop()
        await dispose_engine()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin for origin in settings.cors_allow_origins if origin],
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID")


for _logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error", ""):
    _logger = logging.getLogger(_logger_name)
    if not any(isinstance(flt, SensitiveFilter) for flt in _logger.filters):
        _logger.addFilter(SensitiveFilter())

app.include_router(api_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Return a simple welcome message."""
    return {"message": settings.app_name}
