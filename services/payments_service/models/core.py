import uuid
from datetime import datetime

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.payments_service.models.enums import (
    EnrollmentStatus,
    ManualPaymentStatus,
    enum_values,
)
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

# Amounts are Rupees with 2 decimals, exposed to Python as floats.
Money = Numeric(12, 2, asdecimal=False)


class User(Base):
    """Public profile row for a Supabase auth user."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    full_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    email: Mapped[str | None] = mapped_column(String(160), index=True, nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<User {self.id}>"


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[float] = mapped_column(Money, default=0, nullable=False)
    thumbnail: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<Course {self.title}>"


class Coupon(Base):
    """Percentage coupon codes. Codes are stored uppercase."""

    __tablename__ = "coupons"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(
        String(50), unique=True, index=True, nullable=False
    )
    # Clamped to [0, 100] at evaluation time, whatever is stored.
    discount_percent: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False))
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Inclusive validity bounds; None = unbounded
    valid_from: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    valid_to: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<Coupon {self.code}>"


class ManualPayment(Base):
    """Buyer-attested UPI payment awaiting (or past) admin verification."""

    __tablename__ = "manual_payments"
    __table_args__ = (
        # At most one pending payment per (user, course)
        Index(
            "uq_manual_payments_pending_user_course",
            "user_id",
            "course_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    course_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("courses.id"), index=True, nullable=False
    )

    # Discounted amount actually owed
    amount: Mapped[float] = mapped_column(Money, nullable=False)
    payment_method: Mapped[str] = mapped_column(
        String(30), default="UPI", nullable=False
    )
    transaction_id: Mapped[str | None] = mapped_column(
        String(100), unique=True, nullable=True
    )
    receipt_email: Mapped[str | None] = mapped_column(String(160), nullable=True)
    coupon_code: Mapped[str | None] = mapped_column(
        String(50), index=True, nullable=True
    )

    status: Mapped[ManualPaymentStatus] = mapped_column(
        SAEnum(
            ManualPaymentStatus,
            name="manual_payment_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=ManualPaymentStatus.PENDING,
        nullable=False,
    )

    processed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejection_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True
    )

    def __repr__(self):
        return f"<ManualPayment {self.id} {self.status.value}>"


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (
        # At most one active enrollment per (user, course)
        Index(
            "uq_enrollments_active_user_course",
            "user_id",
            "course_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    course_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("courses.id"), index=True, nullable=False
    )
    status: Mapped[EnrollmentStatus] = mapped_column(
        SAEnum(
            EnrollmentStatus,
            name="enrollment_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=EnrollmentStatus.ACTIVE,
        nullable=False,
    )

    # Filled after creation; see services.review
    payment_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    order_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount_paid: Mapped[float | None] = mapped_column(Money, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<Enrollment {self.user_id}:{self.course_id}>"


class PaymentReconciliation(Base):
    """Outbox row for an approval whose payment update failed after the
    enrollment was granted. Drained by ``tasks.reconcile_approved_payments``.
    """

    __tablename__ = "payment_reconciliations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    payment_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True, nullable=False)
    admin_id: Mapped[str] = mapped_column(String(64), nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
