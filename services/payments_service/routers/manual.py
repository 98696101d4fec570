"""Manual UPI payment endpoints: proof submission and admin review."""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.payments_service.models import ManualPaymentStatus
from services.payments_service.schemas import (
    ApprovePaymentResponse,
    EnrichedPaymentResponse,
    ManualPaymentResponse,
    MyPaymentResponse,
    RejectPaymentRequest,
    RejectPaymentResponse,
    SubmitPaymentRequest,
    SubmitPaymentResponse,
)
from services.payments_service.services import manual_payments, review
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/submit/{course_id}",
    response_model=SubmitPaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_manual_payment(
    course_id: str,
    payload: SubmitPaymentRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Submit proof of a UPI payment (transaction ID or receipt email).
    The payment stays pending until an admin verifies it.
    """
    payment = await manual_payments.submit_payment(
        db,
        user_id=current_user.user_id,
        course_id=course_id,
        transaction_id=payload.transaction_id,
        receipt_email=payload.receipt_email,
        payment_method=payload.payment_method,
        coupon_code=payload.coupon,
    )
    return SubmitPaymentResponse(
        message=manual_payments.SUBMITTED_MESSAGE,
        payment=ManualPaymentResponse.model_validate(payment),
    )


@router.get("/mine", response_model=list[MyPaymentResponse])
async def list_my_payments(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Payment history of the authenticated user."""
    return await manual_payments.list_user_payments(db, current_user.user_id)


@router.get("/manual-payments", response_model=list[EnrichedPaymentResponse])
async def list_manual_payments(
    response: Response,
    status_filter: Optional[ManualPaymentStatus] = Query(None, alias="status"),
    limit: Optional[int] = Query(None, ge=1, le=review.MAX_PAGE_SIZE),
    before: Optional[str] = Query(None),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """
    List manual payments with buyer and course details. Admin only.

    Pass ``limit`` to page; the cursor for the next page's ``before`` is
    returned in the ``X-Next-Cursor`` header.
    """
    rows, next_cursor = await review.list_payments(
        db, status=status_filter, limit=limit, before=before
    )
    if next_cursor is not None:
        response.headers["X-Next-Cursor"] = next_cursor
    return rows


@router.post("/manual-payments/{payment_id}/approve", response_model=ApprovePaymentResponse)
async def approve_manual_payment(
    payment_id: str,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Approve a pending payment and grant course access. Admin only."""
    message = await review.approve_payment(
        db, admin_id=current_user.user_id, payment_id=payment_id
    )
    return ApprovePaymentResponse(message=message)


@router.post("/manual-payments/{payment_id}/reject", response_model=RejectPaymentResponse)
async def reject_manual_payment(
    payment_id: str,
    payload: Optional[RejectPaymentRequest] = Body(None),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Reject a pending payment with an optional note. Admin only."""
    payment = await review.reject_payment(
        db,
        admin_id=current_user.user_id,
        payment_id=payment_id,
        rejection_note=payload.rejection_note if payload else None,
    )
    return RejectPaymentResponse(
        message="Payment rejected",
        payment=ManualPaymentResponse.model_validate(payment),
    )
