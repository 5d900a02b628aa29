"""Versioned API router."""

from fastapi import APIRouter

from . import health, invoices, refunds, registrations, robokassa

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(registrations.router)
router.include_router(invoices.router)
router.include_router(refunds.router)
router.include_router(robokassa.router)
