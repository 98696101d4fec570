"""Coupon evaluation: discount math, lookup, and inference from past amounts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from libs.common.currency import round_rupees, to_decimal
from libs.common.datetime_utils import ensure_utc, utc_now
from services.payments_service.models import Coupon
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

_HUNDRED = Decimal(100)


@dataclass(frozen=True)
class CouponEvaluation:
    """Outcome of pricing a course with an optional coupon code."""

    original_amount: float
    discount_percent: float
    discounted_amount: float
    # Normalized code as supplied by the buyer (may not match any coupon)
    code: Optional[str] = None
    applied: bool = False


@dataclass
class CouponInference:
    """Coupon codes that reproduce a payment amount within tolerance."""

    candidate_codes: list[str] = field(default_factory=list)

    @property
    def code(self) -> Optional[str]:
        return self.candidate_codes[0] if self.candidate_codes else None


def normalize_code(code: Any) -> Optional[str]:
    """Trim and uppercase a coupon code; blank values become None."""
    if code is None:
        return None
    normalized = str(code).strip().upper()
    return normalized or None


def clamp_percent(value: Any) -> Decimal:
    percent = to_decimal(value)
    return min(max(percent, Decimal(0)), _HUNDRED)


def coupon_is_live(coupon: Coupon, now: datetime) -> bool:
    """A coupon applies when active and ``now`` is inside its inclusive window."""
    if not coupon.active:
        return False
    now = ensure_utc(now)
    valid_from = ensure_utc(coupon.valid_from)
    valid_to = ensure_utc(coupon.valid_to)
    if valid_from is not None and now < valid_from:
        return False
    if valid_to is not None and now > valid_to:
        return False
    return True


def discounted_price(course_price: Any, discount_percent: Any) -> float:
    """``round(price * (1 - d/100), 2)`` floored at 0, with ``d`` clamped."""
    price = to_decimal(course_price)
    factor = (_HUNDRED - clamp_percent(discount_percent)) / _HUNDRED
    amount = (price * factor).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return float(max(amount, Decimal(0)))


def apply_coupon(
    coupon: Optional[Coupon],
    course_price: Any,
    now: datetime,
    code: Optional[str] = None,
) -> CouponEvaluation:
    """Price ``course_price`` with ``coupon`` (already looked up) at ``now``."""
    original = round_rupees(course_price)
    if coupon is None or not coupon_is_live(coupon, now):
        return CouponEvaluation(
            original_amount=original,
            discount_percent=0.0,
            discounted_amount=discounted_price(course_price, 0),
            code=code,
        )

    percent = clamp_percent(coupon.discount_percent)
    return CouponEvaluation(
        original_amount=original,
        discount_percent=float(percent),
        discounted_amount=discounted_price(course_price, percent),
        code=code,
        applied=True,
    )


async def find_coupon(db: AsyncSession, code: Optional[str]) -> Optional[Coupon]:
    if not code:
        return None
    result = await db.execute(select(Coupon).where(Coupon.code == code))
    return result.scalar_one_or_none()


async def evaluate_coupon(
    db: AsyncSession,
    code: Any,
    course_price: Any,
    now: Optional[datetime] = None,
) -> CouponEvaluation:
    """
    Look up ``code`` and price the course with it.

    Unknown, inactive and out-of-window codes are not errors: they price at
    the full course amount with ``discount_percent == 0``.
    """
    normalized = normalize_code(code)
    coupon = await find_coupon(db, normalized)
    return apply_coupon(coupon, course_price, now or utc_now(), code=normalized)


async def list_active_coupons(db: AsyncSession) -> list[Coupon]:
    """Active coupons in inference order (oldest first, then by code)."""
    result = await db.execute(
        select(Coupon)
        .where(Coupon.active.is_(True))
        .order_by(Coupon.created_at.asc(), Coupon.code.asc())
    )
    return list(result.scalars().all())


def infer_coupon(
    amount: Any,
    course_price: Any,
    coupons: Iterable[Coupon],
    tolerance: float,
) -> CouponInference:
    """
    Reconstruct which coupon(s) could have produced ``amount`` for a course.

    Every coupon whose discounted course price lies within ``tolerance`` of
    ``amount`` is a candidate. Coupons worth 0% never match, otherwise every
    full-price payment would be tagged.
    """
    paid = to_decimal(amount)
    limit = to_decimal(tolerance)
    inference = CouponInference()
    for coupon in coupons:
        percent = clamp_percent(coupon.discount_percent)
        if percent == 0:
            continue
        expected = to_decimal(discounted_price(course_price, percent))
        if abs(paid - expected) <= limit:
            inference.candidate_codes.append(coupon.code)
    return inference
