"""Routers package."""

from services.payments_service.routers.checkout import router as checkout_router
from services.payments_service.routers.coupons import router as coupons_router
from services.payments_service.routers.manual import router as manual_router

__all__ = [
    "checkout_router",
    "coupons_router",
    "manual_router",
]
