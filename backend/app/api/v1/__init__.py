"""Versioned API router."""

from fastapi import APIRouter

from . import health, orders, pricing, promos

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(pricing.router)
router.include_router(promos.router)
router.include_router(orders.router)

__all__ = ["router"]
