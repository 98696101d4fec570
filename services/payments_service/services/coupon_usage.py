"""Coupon usage reporting for admins.

``list_coupon_usages`` combines explicit usages (payments that stored a
coupon code) with usages inferred from the amount of payments that did not.
``get_coupon_stats`` counts explicit codes only; inferred usages are
advisory and never feed the totals.
"""

from typing import Optional

from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.payments_service.coupons import (
    infer_coupon,
    list_active_coupons,
    normalize_code,
)
from services.payments_service.lookups import courses_by_id, users_by_id
from services.payments_service.models import ManualPayment
from services.payments_service.schemas import CouponUsageResponse
from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def _explicit_usages(
    db: AsyncSession, code: Optional[str]
) -> list[tuple[ManualPayment, Optional[str], list[str]]]:
    query = (
        select(ManualPayment)
        .where(ManualPayment.coupon_code.is_not(None))
        .order_by(desc(ManualPayment.created_at))
    )
    if code:
        query = query.where(ManualPayment.coupon_code == code)
    result = await db.execute(query)
    return [(payment, payment.coupon_code, []) for payment in result.scalars()]


async def _inferred_usages(
    db: AsyncSession, code: Optional[str], tolerance: float
) -> list[tuple[ManualPayment, Optional[str], list[str]]]:
    coupons = await list_active_coupons(db)
    if not coupons:
        return []

    result = await db.execute(
        select(ManualPayment)
        .where(ManualPayment.coupon_code.is_(None))
        .order_by(desc(ManualPayment.created_at))
    )
    payments = list(result.scalars().all())
    courses = await courses_by_id.load(db, (p.course_id for p in payments))

    usages = []
    for payment in payments:
        course = courses.get(payment.course_id)
        if course is None:
            continue
        inference = infer_coupon(payment.amount, course.price, coupons, tolerance)
        # The first candidate is the attribution; the rest only show ambiguity
        if inference.code is None or (code and inference.code != code):
            continue
        usages.append((payment, inference.code, inference.candidate_codes))

    if any(len(candidates) > 1 for _, _, candidates in usages):
        logger.info("Coupon inference matched several codes for some payments")
    return usages


async def list_coupon_usages(
    db: AsyncSession,
    *,
    code: Optional[str] = None,
    include_inferred: bool = True,
    tolerance: Optional[float] = None,
) -> list[CouponUsageResponse]:
    """
    Coupon usages newest first, inferred rows ahead of explicit ones.

    Inferred rows are payments without a stored code whose amount matches
    ``course.price * (1 - d/100)`` for an active coupon within ``tolerance``.
    """
    code = normalize_code(code)
    if tolerance is None:
        tolerance = get_settings().COUPON_INFERENCE_TOLERANCE

    inferred = await _inferred_usages(db, code, tolerance) if include_inferred else []
    explicit = await _explicit_usages(db, code)

    merged = []
    seen = set()
    for is_inferred, usages in ((True, inferred), (False, explicit)):
        for payment, coupon_code, candidates in usages:
            if payment.id in seen:
                continue
            seen.add(payment.id)
            merged.append((payment, coupon_code, candidates, is_inferred))

    users = await users_by_id.load(db, (p.user_id for p, *_ in merged))
    courses = await courses_by_id.load(db, (p.course_id for p, *_ in merged))

    rows = []
    for payment, coupon_code, candidates, is_inferred in merged:
        user = users.get(payment.user_id)
        course = courses.get(payment.course_id)
        rows.append(
            CouponUsageResponse(
                id=payment.id,
                user_id=payment.user_id,
                user_name=user.full_name if user else None,
                user_email=user.email if user else None,
                course_id=payment.course_id,
                course_title=course.title if course else None,
                amount=payment.amount,
                coupon_code=coupon_code,
                status=payment.status,
                created_at=payment.created_at,
                inferred=is_inferred,
                candidate_codes=candidates,
            )
        )
    return rows


async def get_coupon_stats(db: AsyncSession) -> dict[str, int]:
    """Usage count per stored coupon code."""
    result = await db.execute(
        select(ManualPayment.coupon_code, func.count(ManualPayment.id))
        .where(ManualPayment.coupon_code.is_not(None))
        .group_by(ManualPayment.coupon_code)
    )
    return {code: count for code, count in result.all()}
