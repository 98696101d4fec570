"""Checkout session builder for manual UPI payments.

The session is display-only: it is recomputed on every call and nothing is
stored. The amount actually owed is recomputed again at submission.
"""

import re
import uuid
from datetime import datetime, timedelta
from typing import Optional

from libs.common.config import get_settings
from libs.common.currency import CURRENCY
from libs.common.datetime_utils import utc_now
from libs.common.errors import NotFoundError, ValidationError
from libs.common.logging import get_logger
from services.payments_service.coupons import evaluate_coupon
from services.payments_service.models import Course
from services.payments_service.schemas import CheckoutDetails, CheckoutSessionResponse
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

NAME_MAX_LENGTH = 120
EMAIL_MAX_LENGTH = 160
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def parse_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


async def get_course(db: AsyncSession, course_id) -> Course:
    """Fetch a course by id or raise ``NotFoundError``."""
    uid = parse_uuid(course_id)
    course = await db.get(Course, uid) if uid else None
    if course is None:
        raise NotFoundError("Course not found")
    return course


def validate_buyer(name: Optional[str], email: Optional[str]) -> tuple[str, str]:
    name = (name or "").strip()
    email = (email or "").strip()

    if not name:
        raise ValidationError("Name is required")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"Name must be at most {NAME_MAX_LENGTH} characters")
    if len(email) > EMAIL_MAX_LENGTH or not EMAIL_PATTERN.match(email):
        raise ValidationError("A valid email is required")

    return name, email


async def build_checkout(
    db: AsyncSession,
    *,
    user_id: str,
    course_id,
    name: Optional[str],
    email: Optional[str],
    coupon_code: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CheckoutSessionResponse:
    settings = get_settings()
    now = now or utc_now()

    name, email = validate_buyer(name, email)
    course = await get_course(db, course_id)
    pricing = await evaluate_coupon(db, coupon_code, course.price, now)

    logger.info(
        "Checkout for course %s by user %s: amount=%s discount=%s%%",
        course.id,
        user_id,
        pricing.discounted_amount,
        pricing.discount_percent,
    )

    return CheckoutSessionResponse(
        course_id=course.id,
        course_title=course.title,
        thumbnail=course.thumbnail,
        original_amount=pricing.original_amount,
        discount_percent=pricing.discount_percent,
        amount=pricing.discounted_amount,
        currency=CURRENCY,
        upi_qr=settings.MANUAL_UPI_QR,
        upi_address=settings.MANUAL_UPI,
        session_expires_at=now + timedelta(hours=settings.CHECKOUT_SESSION_TTL_HOURS),
        checkout=CheckoutDetails(name=name, email=email, coupon=pricing.code),
    )
