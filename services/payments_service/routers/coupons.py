"""Coupon usage reporting (admin)."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.payments_service.schemas import CouponStatsResponse, CouponUsageResponse
from services.payments_service.services.coupon_usage import (
    get_coupon_stats,
    list_coupon_usages,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments/coupons", tags=["coupons"])


@router.get("/usages", response_model=list[CouponUsageResponse])
async def coupon_usages(
    code: Optional[str] = Query(None),
    include_inferred: bool = Query(True),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Explicit and (optionally) inferred coupon usages. Admin only."""
    return await list_coupon_usages(
        db, code=code, include_inferred=include_inferred
    )


@router.get("/stats", response_model=CouponStatsResponse)
async def coupon_stats(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Usage count per stored coupon code. Admin only."""
    return CouponStatsResponse(stats=await get_coupon_stats(db))
