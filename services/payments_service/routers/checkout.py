"""Buyer checkout: UPI payment details for a course, with coupon pricing."""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.payments_service.schemas import CheckoutRequest, CheckoutSessionResponse
from services.payments_service.services.checkout import build_checkout
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/checkout/{course_id}", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    course_id: str,
    payload: CheckoutRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Validate buyer details and return the amount to pay over UPI.

    Display only: nothing is stored and the expiry is advisory.
    """
    return await build_checkout(
        db,
        user_id=current_user.user_id,
        course_id=course_id,
        name=payload.name,
        email=payload.email,
        coupon_code=payload.coupon,
    )
