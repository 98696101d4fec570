"""Background reconciliation tasks for payments service."""

from __future__ import annotations

from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.db.config import AsyncSessionLocal
from services.payments_service.models import (
    ManualPayment,
    ManualPaymentStatus,
    PaymentReconciliation,
)
from services.payments_service.services.review import (
    find_active_enrollment,
    mark_payment_approved,
)
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)

BATCH_SIZE = 200


async def _reconcile_one(db: AsyncSession, row: PaymentReconciliation) -> bool:
    """Finish one approval. Returns True when the row can be closed."""
    payment = await db.get(ManualPayment, row.payment_id)
    if payment is None or payment.status != ManualPaymentStatus.PENDING:
        # Nothing left to do: deleted, or processed since
        return True

    if not await find_active_enrollment(db, payment.user_id, payment.course_id):
        logger.warning(
            "Reconciliation for payment %s found no active enrollment; leaving pending",
            payment.id,
        )
        return True

    await mark_payment_approved(db, payment.id, row.admin_id, utc_now())
    logger.info("Reconciled approval of payment %s", payment.id)
    return True


async def reconcile_approved_payments(
    session_factory: Optional[async_sessionmaker] = None,
) -> int:
    """Drain open reconciliation rows. Returns how many were resolved."""
    session_factory = session_factory or AsyncSessionLocal
    resolved = 0

    async with session_factory() as db:
        result = await db.execute(
            select(PaymentReconciliation)
            .where(PaymentReconciliation.resolved_at.is_(None))
            .order_by(PaymentReconciliation.created_at.asc())
            .limit(BATCH_SIZE)
        )
        rows = list(result.scalars().all())

        for row in rows:
            row_id = row.id
            try:
                done = await _reconcile_one(db, row)
            except SQLAlchemyError as exc:
                await db.rollback()
                logger.warning("Reconciliation %s failed: %s", row_id, exc)
                row = await db.get(PaymentReconciliation, row_id)
                if row is not None:
                    row.attempts += 1
                    row.error = str(exc)
                    await db.commit()
                continue

            if done:
                row.resolved_at = utc_now()
                row.attempts += 1
                await db.commit()
                resolved += 1

    if resolved:
        logger.info("Resolved %d payment reconciliations", resolved)
    return resolved
