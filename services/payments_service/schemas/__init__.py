"""Payments Service schemas package."""

from services.payments_service.schemas.main import (
    ApprovePaymentResponse,
    CheckoutDetails,
    CheckoutRequest,
    CheckoutSessionResponse,
    CouponStatsResponse,
    CouponUsageResponse,
    CourseSummary,
    EnrichedPaymentResponse,
    ManualPaymentResponse,
    MyPaymentResponse,
    RejectPaymentRequest,
    RejectPaymentResponse,
    SubmitPaymentRequest,
    SubmitPaymentResponse,
    UserSummary,
)

__all__ = [
    "ApprovePaymentResponse",
    "CheckoutDetails",
    "CheckoutRequest",
    "CheckoutSessionResponse",
    "CouponStatsResponse",
    "CouponUsageResponse",
    "CourseSummary",
    "EnrichedPaymentResponse",
    "ManualPaymentResponse",
    "MyPaymentResponse",
    "RejectPaymentRequest",
    "RejectPaymentResponse",
    "SubmitPaymentRequest",
    "SubmitPaymentResponse",
    "UserSummary",
]
