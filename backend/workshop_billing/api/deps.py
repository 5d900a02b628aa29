"""Common API dependencies."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from workshop_billing.core.security import decode_access_token
from workshop_billing.core.settings import get_robokassa_settings
from workshop_billing.db.session import get_session
from workshop_billing.integrations import (
    DisabledEventPublisher,
    EventPublisher,
    RobokassaClient,
)
from workshop_billing.models import User
from workshop_billing.security.permissions import CallerContext
from workshop_billing.services.observability import LoggingObserver, Observer

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


async def get_caller(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> CallerContext:
    """Authenticate the request and return the caller's identity."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as exc:
        raise credentials_exception from exc

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except (ValueError, TypeError) as exc:
        raise credentials_exception from exc

    user = await session.get(User, user_id)
    if user is None:
        raise credentials_exception
    return CallerContext(user_id=user.id, role=user.role)


async def get_robokassa_client() -> AsyncGenerator[RobokassaClient, None]:
    """Provide a gateway client bound to the request lifetime."""
    client = RobokassaClient(get_robokassa_settings())
    try:
        yield client
    finally:
        await client.aclose()


def get_event_publisher(request: Request) -> EventPublisher:
    """Return the publisher started by the application lifespan."""
    publisher = getattr(request.app.state, "event_publisher", None)
    return publisher or DisabledEventPublisher()


def get_observer() -> Observer:
    return LoggingObserver()


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Caller = Annotated[CallerContext, Depends(get_caller)]
Gateway = Annotated[RobokassaClient, Depends(get_robokassa_client)]
Publisher = Annotated[EventPublisher, Depends(get_event_publisher)]
ObserverDep = Annotated[Observer, Depends(get_observer)]
