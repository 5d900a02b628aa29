"""Test fixtures for the workshop billing backend."""
from __future__ import annotations

import os
import uuid
from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("ROBOKASSA_MERCHANT_LOGIN", "craft-shop")
os.environ.setdefault("ROBOKASSA_PASSWORD1", "pass-one")
os.environ.setdefault("ROBOKASSA_PASSWORD2", "pass-two")
os.environ.setdefault("ROBOKASSA_PASSWORD3", "pass-three")
os.environ.setdefault("ROBOKASSA_NOTIFICATION_KEY", "notify-secret")
os.environ.setdefault("ROBOKASSA_NOTIFICATION_ALGORITHMS", "HS256")
os.environ.setdefault("PAYMENT_SUCCESS_URL", "https://craft.example/payment/success")
os.environ.setdefault("PAYMENT_FAIL_URL", "https://craft.example/payment/fail")
os.environ.pop("KAFKA_BOOTSTRAP_SERVERS", None)

from workshop_billing.api import deps
from workshop_billing.core.config import get_settings
from workshop_billing.core.security import create_access_token
from workshop_billing.db.base import Base
from workshop_billing.db.session import dispose_engine, get_sessionmaker
from workshop_billing.main import app
from workshop_billing.models import User, UserRole, Workshop

WORKSHOP_STYLES = [
    {"id": "classic", "name": "Classic clay mug", "price": "1500.00"},
    {"id": "glitter", "name": "Glitter clay mug", "price": "1800.00"},
]
WORKSHOP_OPTIONS = [
    {"id": "gift-box", "name": "Gift box", "price": "300.00"},
]


class RecordingPublisher:
    """Event publisher that keeps published events in memory."""

    def __init__(self) -> None:
        self.events: list[dict[str, uuid.UUID]] = []

    async def invoice_paid(self, *, invoice_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        self.events.append({"invoice_id": invoice_id, "owner_id": owner_id})


class RecordingObserver:
    """Observer that keeps recorded events in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, object]]] = []
        self.failures: list[tuple[str, BaseException]] = []

    def record(self, event: str, **fields: object) -> None:
        self.events.append((event, fields))

    def side_effect_failed(
        self, effect: str, error: BaseException, **fields: object
    ) -> None:
        self.failures.append((effect, error))

    def names(self) -> list[str]:
        return [event for event, _ in self.events]


def auth_headers(user_id: uuid.UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user_id))}"}


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest.fixture()
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest_asyncio.fixture()
async def seeded(reset_database: None, db_url: str) -> dict[str, uuid.UUID]:
    """Seed two parents, an administrator and an upcoming workshop."""
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        parent = User(
            email="parent@example.com",
            full_name="Irina Parent",
            phone_number="+79990000001",
            role=UserRole.PARENT,
        )
        other_parent = User(
            email="other.parent@example.com",
            full_name="Oleg Other",
            role=UserRole.PARENT,
        )
        admin = User(
            email="admin@example.com",
            full_name="Anna Admin",
            role=UserRole.ADMIN,
        )
        workshop = Workshop(
            title="Clay mug painting",
            school_name="School 42",
            city="Kazan",
            class_group="3B",
            starts_at=datetime.now(UTC) + timedelta(days=2),
            styles=WORKSHOP_STYLES,
            options=WORKSHOP_OPTIONS,
        )
        session.add_all([parent, other_parent, admin, workshop])
        await session.commit()

        return {
            "parent_id": parent.id,
            "other_parent_id": other_parent.id,
            "admin_id": admin.id,
            "workshop_id": workshop.id,
        }


@pytest_asyncio.fixture()
async def app_context(seeded: dict[str, uuid.UUID]) -> AsyncIterator[dict[str, object]]:
    """Yield an async client together with the seeded identifiers."""
    publisher = RecordingPublisher()
    app.dependency_overrides[deps.get_event_publisher] = lambda: publisher

    context: dict[str, object] = dict(seeded)
    context["publisher"] = publisher
    context["parent_headers"] = auth_headers(seeded["parent_id"])
    context["other_headers"] = auth_headers(seeded["other_parent_id"])
    context["admin_headers"] = auth_headers(seeded["admin_id"])

    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            context["client"] = client
            yield context
    finally:
        app.dependency_overrides.clear()
