"""Versioned API router."""

from fastapi import APIRouter

from . import (
    catalog,
    checkout,
    health,
    platform_settings,
    pricing,
    promo_codes,
)

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(pricing.router, tags=["pricing"])
router.include_router(promo_codes.router, tags=["promo-codes"])
router.include_router(promo_codes.admin_router, tags=["admin"])
router.include_router(checkout.router, tags=["checkout"])
router.include_router(catalog.router, tags=["admin"])
router.include_router(platform_settings.router, tags=["admin"])

__all__ = ["router"]
