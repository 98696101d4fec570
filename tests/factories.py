"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    course = CourseFactory.create(price=1000)
    db_session.add(course)
    await db_session.commit()
"""

import uuid
from datetime import datetime, timedelta, timezone

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _yesterday() -> datetime:
    return _now() - timedelta(days=1)


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex[:8]}@test.com"


def _user_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


class UserFactory:
    @staticmethod
    def create(**overrides):
        from services.payments_service.models import User

        defaults = {
            "id": _user_id(),
            "full_name": "Test Learner",
            "email": _unique_email(),
            "is_admin": False,
        }
        defaults.update(overrides)
        return User(**defaults)


class CourseFactory:
    @staticmethod
    def create(**overrides):
        from services.payments_service.models import Course

        defaults = {
            "id": uuid.uuid4(),
            "title": "Full-Stack Web Development",
            "price": 1000.0,
            "thumbnail": "https://cdn.example.com/thumbs/fullstack.png",
        }
        defaults.update(overrides)
        return Course(**defaults)


class CouponFactory:
    @staticmethod
    def create(**overrides):
        from services.payments_service.models import Coupon

        defaults = {
            "id": uuid.uuid4(),
            "code": f"C{uuid.uuid4().hex[:6].upper()}",
            "discount_percent": 10.0,
            "active": True,
            "valid_from": None,
            "valid_to": None,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return Coupon(**defaults)


class ManualPaymentFactory:
    @staticmethod
    def create(course_id=None, **overrides):
        from services.payments_service.models import ManualPayment, ManualPaymentStatus

        defaults = {
            "id": uuid.uuid4(),
            "user_id": _user_id(),
            "course_id": course_id or uuid.uuid4(),
            "amount": 1000.0,
            "payment_method": "UPI",
            "transaction_id": f"TXN{uuid.uuid4().hex[:10].upper()}",
            "receipt_email": None,
            "coupon_code": None,
            "status": ManualPaymentStatus.PENDING,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return ManualPayment(**defaults)


class EnrollmentFactory:
    @staticmethod
    def create(course_id=None, **overrides):
        from services.payments_service.models import Enrollment, EnrollmentStatus

        defaults = {
            "id": uuid.uuid4(),
            "user_id": _user_id(),
            "course_id": course_id or uuid.uuid4(),
            "status": EnrollmentStatus.ACTIVE,
        }
        defaults.update(overrides)
        return Enrollment(**defaults)
