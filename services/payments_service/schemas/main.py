import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.payments_service.models import ManualPaymentStatus

# --- Checkout ---


class CheckoutRequest(BaseModel):
    """Buyer details collected before showing the UPI payment screen.

    Lengths and formats are checked after trimming in the service layer.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    coupon: Optional[str] = None


class CheckoutDetails(BaseModel):
    name: str
    email: str
    coupon: Optional[str] = None


class CheckoutSessionResponse(BaseModel):
    """Display-only payment intent. Nothing is persisted."""

    course_id: uuid.UUID = Field(alias="courseId")
    course_title: str
    thumbnail: Optional[str] = None
    original_amount: float
    discount_percent: float
    amount: float
    currency: str = "INR"
    upi_qr: Optional[str] = None
    upi_address: Optional[str] = None
    session_expires_at: datetime
    checkout: CheckoutDetails

    model_config = ConfigDict(populate_by_name=True)


# --- Manual payments ---


class SubmitPaymentRequest(BaseModel):
    """Proof of an out-of-band UPI payment: a transaction id or a receipt email."""

    transaction_id: Optional[str] = None
    receipt_email: Optional[str] = None
    payment_method: Optional[str] = None
    coupon: Optional[str] = None


class RejectPaymentRequest(BaseModel):
    rejection_note: Optional[str] = Field(default=None, max_length=500)


class ManualPaymentResponse(BaseModel):
    id: uuid.UUID
    user_id: str
    course_id: uuid.UUID
    amount: float
    payment_method: str
    transaction_id: Optional[str] = None
    receipt_email: Optional[str] = None
    coupon_code: Optional[str] = None
    status: ManualPaymentStatus
    processed_by: Optional[str] = None
    processed_at: Optional[datetime] = None
    rejection_note: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SubmitPaymentResponse(BaseModel):
    message: str
    payment: ManualPaymentResponse


class UserSummary(BaseModel):
    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CourseSummary(BaseModel):
    id: uuid.UUID
    title: str
    thumbnail: Optional[str] = None
    price: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class EnrichedPaymentResponse(ManualPaymentResponse):
    """Admin view of a payment with its buyer and course joined in."""

    user: Optional[UserSummary] = None
    course: Optional[CourseSummary] = None


class MyPaymentResponse(ManualPaymentResponse):
    course: Optional[CourseSummary] = None


class ApprovePaymentResponse(BaseModel):
    message: str


class RejectPaymentResponse(BaseModel):
    message: str
    payment: ManualPaymentResponse


# --- Coupon reporting ---


class CouponUsageResponse(BaseModel):
    id: uuid.UUID
    user_id: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    course_id: uuid.UUID
    course_title: Optional[str] = None
    amount: float
    coupon_code: Optional[str] = None
    status: ManualPaymentStatus
    created_at: datetime
    inferred: bool = False
    # Every coupon reproducing the amount (inferred rows only)
    candidate_codes: list[str] = Field(default_factory=list)


class CouponStatsResponse(BaseModel):
    stats: dict[str, int]
