"""create manual payment tables

Revision ID: 7c41d2e9a0b3
Revises:
Create Date: 2026-10-19 09:12:44.318201
"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "7c41d2e9a0b3"
down_revision = None
branch_labels = None
depends_on = None

manual_payment_status = sa.Enum(
    "pending", "approved", "rejected", name="manual_payment_status_enum"
)
enrollment_status = sa.Enum(
    "active", "cancelled", "refunded", name="enrollment_status_enum"
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("full_name", sa.String(length=120), nullable=True),
        sa.Column("email", sa.String(length=160), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "courses",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("thumbnail", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "coupons",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("discount_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("valid_to", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_coupons_code", "coupons", ["code"], unique=True)

    op.create_table(
        "manual_payments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("course_id", sa.Uuid(), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_method", sa.String(length=30), nullable=False),
        sa.Column("transaction_id", sa.String(length=100), nullable=True, unique=True),
        sa.Column("receipt_email", sa.String(length=160), nullable=True),
        sa.Column("coupon_code", sa.String(length=50), nullable=True),
        sa.Column("status", manual_payment_status, nullable=False),
        sa.Column("processed_by", sa.String(length=64), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_manual_payments_user_id", "manual_payments", ["user_id"])
    op.create_index("ix_manual_payments_course_id", "manual_payments", ["course_id"])
    op.create_index("ix_manual_payments_coupon_code", "manual_payments", ["coupon_code"])
    op.create_index("ix_manual_payments_created_at", "manual_payments", ["created_at"])
    op.create_index(
        "uq_manual_payments_pending_user_course",
        "manual_payments",
        ["user_id", "course_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "enrollments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("course_id", sa.Uuid(), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("status", enrollment_status, nullable=False),
        sa.Column("payment_id", sa.String(length=64), nullable=True),
        sa.Column("order_id", sa.String(length=100), nullable=True),
        sa.Column("amount_paid", sa.Numeric(12, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_enrollments_user_id", "enrollments", ["user_id"])
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])
    op.create_index(
        "uq_enrollments_active_user_course",
        "enrollments",
        ["user_id", "course_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "payment_reconciliations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("payment_id", sa.Uuid(), nullable=False),
        sa.Column("admin_id", sa.String(length=64), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_payment_reconciliations_payment_id",
        "payment_reconciliations",
        ["payment_id"],
    )


def downgrade() -> None:
    op.drop_table("payment_reconciliations")
    op.drop_table("enrollments")
    op.drop_table("manual_payments")
    op.drop_table("coupons")
    op.drop_table("courses")
    op.drop_table("users")
    enrollment_status.drop(op.get_bind(), checkfirst=True)
    manual_payment_status.drop(op.get_bind(), checkfirst=True)
