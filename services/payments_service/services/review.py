"""Admin review of manual payments: listing, approval and rejection.

Status moves only pending → approved or pending → rejected. Approval grants
an active enrollment first and records the payment transition second; if the
second step fails the buyer keeps access and a reconciliation row is written
for ``tasks.reconcile_approved_payments`` to finish the bookkeeping.
"""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.errors import (
    InternalError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from libs.common.logging import get_logger
from services.payments_service.lookups import courses_by_id, users_by_id
from services.payments_service.models import (
    Enrollment,
    EnrollmentStatus,
    ManualPayment,
    ManualPaymentStatus,
    PaymentReconciliation,
)
from services.payments_service.schemas import (
    CourseSummary,
    EnrichedPaymentResponse,
    UserSummary,
)
from services.payments_service.services.checkout import parse_uuid
from sqlalchemy import and_, desc, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

MAX_PAGE_SIZE = 200
CURSOR_SEPARATOR = "|"


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


async def enrich_payments(
    db: AsyncSession, payments: list[ManualPayment]
) -> list[EnrichedPaymentResponse]:
    users = await users_by_id.load(db, (p.user_id for p in payments))
    courses = await courses_by_id.load(db, (p.course_id for p in payments))

    rows = []
    for payment in payments:
        row = EnrichedPaymentResponse.model_validate(payment)
        user = users.get(payment.user_id)
        course = courses.get(payment.course_id)
        row.user = UserSummary.model_validate(user) if user else None
        row.course = CourseSummary.model_validate(course) if course else None
        rows.append(row)
    return rows


def encode_cursor(payment: ManualPayment) -> str:
    """Opaque page cursor: ``<created_at ISO>|<payment id>``."""
    return f"{ensure_utc(payment.created_at).isoformat()}{CURSOR_SEPARATOR}{payment.id}"


def decode_cursor(cursor: str) -> tuple[datetime, Optional[uuid.UUID]]:
    """
    Split a cursor into ``(created_at, id)``.

    A bare ISO timestamp is accepted too and pages strictly before it.
    """
    raw_ts, _, raw_id = cursor.strip().partition(CURSOR_SEPARATOR)
    try:
        created_at = ensure_utc(datetime.fromisoformat(raw_ts.replace("Z", "+00:00")))
    except ValueError:
        raise ValidationError("Invalid cursor")
    payment_id = parse_uuid(raw_id) if raw_id else None
    if raw_id and payment_id is None:
        raise ValidationError("Invalid cursor")
    return created_at, payment_id


async def list_payments(
    db: AsyncSession,
    *,
    status: Optional[ManualPaymentStatus] = None,
    limit: Optional[int] = None,
    before: Optional[str] = None,
) -> tuple[list[EnrichedPaymentResponse], Optional[str]]:
    """
    Payments newest first, enriched with buyer and course.

    Returns ``(rows, next_cursor)``. Rows are ordered by ``(created_at, id)``
    descending, so payments sharing a timestamp are neither skipped nor
    repeated across pages. ``next_cursor`` is set when a ``limit`` was given
    and the page came back full.
    """
    query = select(ManualPayment).order_by(
        desc(ManualPayment.created_at), desc(ManualPayment.id)
    )
    if status is not None:
        query = query.where(ManualPayment.status == status)
    if before:
        created_at, payment_id = decode_cursor(before)
        if payment_id is None:
            query = query.where(ManualPayment.created_at < created_at)
        else:
            query = query.where(
                or_(
                    ManualPayment.created_at < created_at,
                    and_(
                        ManualPayment.created_at == created_at,
                        ManualPayment.id < payment_id,
                    ),
                )
            )
    page_size = min(limit, MAX_PAGE_SIZE) if limit is not None else None
    if page_size is not None:
        query = query.limit(page_size)

    result = await db.execute(query)
    payments = list(result.scalars().all())

    next_cursor = None
    if page_size is not None and payments and len(payments) == page_size:
        next_cursor = encode_cursor(payments[-1])

    return await enrich_payments(db, payments), next_cursor


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


async def get_pending_payment(db: AsyncSession, payment_id) -> ManualPayment:
    uid = parse_uuid(payment_id)
    payment = await db.get(ManualPayment, uid) if uid else None
    if payment is None:
        raise NotFoundError("Payment not found")
    if payment.status != ManualPaymentStatus.PENDING:
        raise InvalidStateError(f"Payment already {payment.status.value}")
    return payment


async def find_active_enrollment(
    db: AsyncSession, user_id: str, course_id: uuid.UUID
) -> Optional[Enrollment]:
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.user_id == user_id,
            Enrollment.course_id == course_id,
            Enrollment.status == EnrollmentStatus.ACTIVE,
        )
    )
    return result.scalars().first()


async def _grant_enrollment(
    db: AsyncSession, user_id: str, course_id: uuid.UUID
) -> Optional[Enrollment]:
    """Insert an active enrollment. Returns None when one already exists."""
    if await find_active_enrollment(db, user_id, course_id):
        return None

    enrollment = Enrollment(
        user_id=user_id, course_id=course_id, status=EnrollmentStatus.ACTIVE
    )
    db.add(enrollment)
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent approval created it between the check and the insert
        await db.rollback()
        logger.info("Active enrollment for %s/%s created concurrently", user_id, course_id)
        return None
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Enrollment creation failed for %s/%s", user_id, course_id)
        raise InternalError("Failed to create enrollment") from exc
    return enrollment


async def _attach_payment_details(
    db: AsyncSession,
    enrollment: Enrollment,
    *,
    payment_id: uuid.UUID,
    transaction_id: Optional[str],
    amount: float,
) -> None:
    """Best effort: the enrollment's existence is what grants access."""
    enrollment_id = enrollment.id
    try:
        await db.execute(
            update(Enrollment)
            .where(Enrollment.id == enrollment_id)
            .values(
                payment_id=str(payment_id),
                order_id=transaction_id,
                amount_paid=amount,
            )
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.warning(
            "Could not attach payment %s details to enrollment %s: %s",
            payment_id,
            enrollment_id,
            exc,
        )


async def mark_payment_approved(
    db: AsyncSession, payment_id: uuid.UUID, admin_id: str, processed_at: datetime
) -> bool:
    """Move a pending payment to approved. False if it was no longer pending."""
    result = await db.execute(
        update(ManualPayment)
        .where(
            ManualPayment.id == payment_id,
            ManualPayment.status == ManualPaymentStatus.PENDING,
        )
        .values(
            status=ManualPaymentStatus.APPROVED,
            processed_by=admin_id,
            processed_at=processed_at,
        )
    )
    await db.commit()
    return result.rowcount == 1


async def _record_reconciliation(
    db: AsyncSession, payment_id: uuid.UUID, admin_id: str, error: str
) -> None:
    db.add(PaymentReconciliation(payment_id=payment_id, admin_id=admin_id, error=error))
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(
            "Could not record reconciliation for payment %s; manual fix required",
            payment_id,
        )


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


async def approve_payment(
    db: AsyncSession, *, admin_id: str, payment_id, now: Optional[datetime] = None
) -> str:
    """
    Approve a pending payment and grant course access.

    Already-enrolled buyers get no second enrollment. A failure to record the
    approval after access was granted is logged, queued for reconciliation and
    still reported as success. If the payment was rejected meanwhile, the
    enrollment this call granted is cancelled and ``InvalidStateError`` raised.
    """
    payment = await get_pending_payment(db, payment_id)
    # Plain values: rollbacks below expire ORM instances
    pid = payment.id
    user_id = payment.user_id
    course_id = payment.course_id
    transaction_id = payment.transaction_id
    amount = payment.amount

    enrollment = await _grant_enrollment(db, user_id, course_id)
    enrollment_id = enrollment.id if enrollment is not None else None
    if enrollment is not None:
        await _attach_payment_details(
            db,
            enrollment,
            payment_id=pid,
            transaction_id=transaction_id,
            amount=amount,
        )
        message = "Payment approved and enrollment created"
    else:
        message = "Payment approved; user was already enrolled"

    try:
        updated = await mark_payment_approved(db, pid, admin_id, now or utc_now())
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(
            "Payment %s left pending after enrollment was granted to %s: %s",
            pid,
            user_id,
            exc,
        )
        await _record_reconciliation(db, pid, admin_id, str(exc))
        return message

    if updated:
        logger.info("Payment %s approved by admin %s", pid, admin_id)
        return message

    current = await _current_status(db, pid)
    if current == ManualPaymentStatus.APPROVED:
        logger.info("Payment %s was approved concurrently by another admin", pid)
        return message
    if current == ManualPaymentStatus.PENDING:
        await _record_reconciliation(db, pid, admin_id, "approval update matched no row")
        return message

    # Rejected (or removed) while this approval was in flight
    if enrollment_id is not None:
        await _revoke_enrollment(db, enrollment_id, pid)
    logger.warning("Approval of payment %s lost to a concurrent %s", pid, current)
    state = current.value if current is not None else "processed"
    raise InvalidStateError(f"Payment already {state}")


async def _current_status(
    db: AsyncSession, payment_id: uuid.UUID
) -> Optional[ManualPaymentStatus]:
    result = await db.execute(
        select(ManualPayment.status).where(ManualPayment.id == payment_id)
    )
    return result.scalar_one_or_none()


async def _revoke_enrollment(
    db: AsyncSession, enrollment_id: uuid.UUID, payment_id: uuid.UUID
) -> None:
    """Cancel an enrollment granted for a payment that did not end up approved."""
    try:
        await db.execute(
            update(Enrollment)
            .where(
                Enrollment.id == enrollment_id,
                Enrollment.status == EnrollmentStatus.ACTIVE,
            )
            .values(status=EnrollmentStatus.CANCELLED)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception(
            "Could not revoke enrollment %s for unapproved payment %s",
            enrollment_id,
            payment_id,
        )
        raise InternalError("Failed to revoke enrollment") from exc
    logger.warning(
        "Revoked enrollment %s granted for unapproved payment %s",
        enrollment_id,
        payment_id,
    )


async def reject_payment(
    db: AsyncSession,
    *,
    admin_id: str,
    payment_id,
    rejection_note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ManualPayment:
    """Reject a pending payment. Terminal: it cannot be approved afterwards."""
    payment = await get_pending_payment(db, payment_id)
    pid = payment.id
    note = (rejection_note or "").strip() or None

    try:
        result = await db.execute(
            update(ManualPayment)
            .where(
                ManualPayment.id == pid,
                ManualPayment.status == ManualPaymentStatus.PENDING,
            )
            .values(
                status=ManualPaymentStatus.REJECTED,
                processed_by=admin_id,
                processed_at=now or utc_now(),
                rejection_note=note,
            )
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to reject payment %s", pid)
        raise InternalError("Failed to reject payment") from exc

    if result.rowcount != 1:
        raise InvalidStateError("Payment was already processed")

    await db.refresh(payment)
    logger.info("Payment %s rejected by admin %s", pid, admin_id)
    return payment
