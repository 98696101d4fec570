"""Payments Service models package."""

from services.payments_service.models.core import (
    Coupon,
    Course,
    Enrollment,
    ManualPayment,
    PaymentReconciliation,
    User,
)
from services.payments_service.models.enums import (
    EnrollmentStatus,
    ManualPaymentStatus,
)

__all__ = [
    "Coupon",
    "Course",
    "Enrollment",
    "EnrollmentStatus",
    "ManualPayment",
    "ManualPaymentStatus",
    "PaymentReconciliation",
    "User",
]
