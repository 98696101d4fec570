"""Buyer-side manual payment operations: proof submission and history."""

from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.errors import ConflictError, InternalError, ValidationError
from libs.common.logging import get_logger
from services.payments_service.coupons import evaluate_coupon
from services.payments_service.lookups import courses_by_id
from services.payments_service.models import ManualPayment, ManualPaymentStatus
from services.payments_service.schemas import CourseSummary, MyPaymentResponse
from services.payments_service.services.checkout import get_course
from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

TRANSACTION_ID_MAX_LENGTH = 100
RECEIPT_EMAIL_MAX_LENGTH = 160
PAYMENT_METHOD_MAX_LENGTH = 30
COUPON_CODE_MAX_LENGTH = 50
DEFAULT_PAYMENT_METHOD = "UPI"

SUBMITTED_MESSAGE = (
    "Payment submitted for verification. Access is usually granted within a few hours."
)


def _capped(value: Optional[str], limit: int) -> Optional[str]:
    cleaned = (value or "").strip()[:limit]
    return cleaned or None


async def _transaction_exists(db: AsyncSession, transaction_id: str) -> bool:
    result = await db.execute(
        select(ManualPayment.id).where(ManualPayment.transaction_id == transaction_id)
    )
    return result.first() is not None


async def _pending_exists(db: AsyncSession, user_id: str, course_id) -> bool:
    result = await db.execute(
        select(ManualPayment.id).where(
            ManualPayment.user_id == user_id,
            ManualPayment.course_id == course_id,
            ManualPayment.status == ManualPaymentStatus.PENDING,
        )
    )
    return result.first() is not None


async def _ensure_unique(
    db: AsyncSession, user_id: str, course_id, transaction_id: Optional[str]
) -> None:
    if transaction_id and await _transaction_exists(db, transaction_id):
        raise ConflictError("This transaction ID has already been submitted")
    if await _pending_exists(db, user_id, course_id):
        raise ConflictError("A pending payment already exists for this course")


async def submit_payment(
    db: AsyncSession,
    *,
    user_id: str,
    course_id,
    transaction_id: Optional[str] = None,
    receipt_email: Optional[str] = None,
    payment_method: Optional[str] = None,
    coupon_code: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ManualPayment:
    """
    Record a buyer's proof of UPI payment as a pending manual payment.

    The amount is recomputed from the current course price and coupon; the
    figure shown at checkout is not binding. No enrollment is created here.
    """
    transaction_id = _capped(transaction_id, TRANSACTION_ID_MAX_LENGTH)
    receipt_email = _capped(receipt_email, RECEIPT_EMAIL_MAX_LENGTH)
    payment_method = (
        _capped(payment_method, PAYMENT_METHOD_MAX_LENGTH) or DEFAULT_PAYMENT_METHOD
    )

    if not transaction_id and not receipt_email:
        raise ValidationError("Provide a transaction ID or a receipt email")

    course = await get_course(db, course_id)
    course_pk = course.id
    await _ensure_unique(db, user_id, course_pk, transaction_id)

    pricing = await evaluate_coupon(db, coupon_code, course.price, now or utc_now())

    payment = ManualPayment(
        user_id=user_id,
        course_id=course_pk,
        amount=pricing.discounted_amount,
        payment_method=payment_method,
        transaction_id=transaction_id,
        receipt_email=receipt_email,
        coupon_code=_capped(pricing.code, COUPON_CODE_MAX_LENGTH),
        status=ManualPaymentStatus.PENDING,
    )
    db.add(payment)

    try:
        await db.commit()
    except IntegrityError as exc:
        # Lost a race against a concurrent submission; the unique indexes
        # on transaction_id and pending (user, course) caught it.
        await db.rollback()
        logger.info("Concurrent manual payment submission rejected: %s", exc.orig)
        await _ensure_unique(db, user_id, course_pk, transaction_id)
        raise ConflictError("Duplicate payment submission")
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to store manual payment for user %s", user_id)
        raise InternalError("Failed to submit payment") from exc

    await db.refresh(payment)
    logger.info(
        "Manual payment %s submitted by user %s for course %s (amount=%s, coupon=%s)",
        payment.id,
        user_id,
        course_pk,
        payment.amount,
        payment.coupon_code,
    )
    return payment


async def list_user_payments(db: AsyncSession, user_id: str) -> list[MyPaymentResponse]:
    """The caller's own payments, newest first, with course title/thumbnail."""
    result = await db.execute(
        select(ManualPayment)
        .where(ManualPayment.user_id == user_id)
        .order_by(desc(ManualPayment.created_at))
    )
    payments = list(result.scalars().all())
    courses = await courses_by_id.load(db, (p.course_id for p in payments))

    rows = []
    for payment in payments:
        course = courses.get(payment.course_id)
        row = MyPaymentResponse.model_validate(payment)
        row.course = CourseSummary.model_validate(course) if course else None
        rows.append(row)
    return rows
