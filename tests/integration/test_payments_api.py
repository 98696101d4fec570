"""Integration tests for the payments HTTP API."""

import uuid

import pytest
from jose import jwt
from services.payments_service.models import ManualPaymentStatus
from tests.factories import (
    CouponFactory,
    CourseFactory,
    ManualPaymentFactory,
    UserFactory,
)


async def _seed_course(db_session, **overrides):
    course = CourseFactory.create(**overrides)
    db_session.add(course)
    await db_session.commit()
    return course


async def _seed_admin(db_session, login):
    admin = UserFactory.create(full_name="Admin", is_admin=True)
    db_session.add(admin)
    await db_session.commit()
    login(admin.id, admin.email)
    return admin


# ---------------------------------------------------------------------------
# Health and auth
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "payments"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_missing_token_is_unauthorized(client, db_session):
    course = await _seed_course(db_session)

    response = await client.post(
        f"/payments/checkout/{course.id}",
        json={"name": "Asha", "email": "asha@example.com"},
    )

    assert response.status_code == 401
    assert response.json() == {"message": "Could not validate credentials"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_bad_token_is_unauthorized(client):
    response = await client.get(
        "/payments/mine", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_supabase_token_is_accepted(client, db_session):
    user_id = str(uuid.uuid4())
    token = jwt.encode(
        {"sub": user_id, "email": "asha@example.com", "role": "authenticated"},
        "test-jwt-secret",
        algorithm="HS256",
    )
    course = await _seed_course(db_session)
    db_session.add(ManualPaymentFactory.create(course_id=course.id, user_id=user_id))
    await db_session.commit()

    response = await client.get(
        "/payments/mine", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 200
    assert len(response.json()) == 1


# ---------------------------------------------------------------------------
# Buyer flow
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_with_coupon(client, db_session, login):
    course = await _seed_course(db_session, title="Machine Learning", price=1000)
    db_session.add(CouponFactory.create(code="MS10", discount_percent=10))
    await db_session.commit()
    login("buyer-1")

    response = await client.post(
        f"/payments/checkout/{course.id}",
        json={"name": "Asha", "email": "asha@example.com", "coupon": "ms10"},
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["courseId"] == str(course.id)
    assert data["course_title"] == "Machine Learning"
    assert data["original_amount"] == 1000.0
    assert data["discount_percent"] == 10.0
    assert data["amount"] == 900.0
    assert data["currency"] == "INR"
    assert data["upi_address"] == "learn@okaxis"
    assert data["checkout"] == {
        "name": "Asha",
        "email": "asha@example.com",
        "coupon": "MS10",
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_validation_error(client, db_session, login):
    course = await _seed_course(db_session)
    login("buyer-1")

    response = await client.post(
        f"/payments/checkout/{course.id}", json={"name": "", "email": "x@y.co"}
    )

    assert response.status_code == 400
    assert response.json() == {"message": "Name is required"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_unknown_course(client, login):
    login("buyer-1")

    response = await client.post(
        f"/payments/checkout/{uuid.uuid4()}",
        json={"name": "Asha", "email": "asha@example.com"},
    )

    assert response.status_code == 404
    assert response.json() == {"message": "Course not found"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_submit_and_duplicate(client, db_session, login):
    course = await _seed_course(db_session, price=1000)
    db_session.add(CouponFactory.create(code="MS10", discount_percent=10))
    await db_session.commit()
    login("buyer-1")

    response = await client.post(
        f"/payments/submit/{course.id}",
        json={"transaction_id": "TXN1", "coupon": "MS10"},
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["message"].startswith("Payment submitted for verification")
    assert data["payment"]["status"] == "pending"
    assert data["payment"]["amount"] == 900.0
    assert data["payment"]["payment_method"] == "UPI"

    duplicate = await client.post(
        f"/payments/submit/{course.id}", json={"transaction_id": "TXN1"}
    )
    assert duplicate.status_code == 409
    assert duplicate.json() == {
        "message": "This transaction ID has already been submitted"
    }

    second_pending = await client.post(
        f"/payments/submit/{course.id}", json={"transaction_id": "TXN2"}
    )
    assert second_pending.status_code == 409

    mine = await client.get("/payments/mine")
    assert mine.status_code == 200
    assert [row["transaction_id"] for row in mine.json()] == ["TXN1"]
    assert mine.json()[0]["course"]["id"] == str(course.id)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_submit_requires_proof(client, db_session, login):
    course = await _seed_course(db_session)
    login("buyer-1")

    response = await client.post(f"/payments/submit/{course.id}", json={})

    assert response.status_code == 400
    assert response.json() == {"message": "Provide a transaction ID or a receipt email"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_malformed_body_is_bad_request(client, db_session, login):
    course = await _seed_course(db_session)
    login("buyer-1")

    response = await client.post(
        f"/payments/submit/{course.id}",
        content="not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid request"


# ---------------------------------------------------------------------------
# Admin review
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/payments/manual-payments"),
        ("post", f"/payments/manual-payments/{uuid.uuid4()}/approve"),
        ("post", f"/payments/manual-payments/{uuid.uuid4()}/reject"),
        ("get", "/payments/coupons/usages"),
        ("get", "/payments/coupons/stats"),
    ],
)
async def test_admin_endpoints_forbidden_for_buyers(
    client, db_session, login, method, path
):
    buyer = UserFactory.create()
    db_session.add(buyer)
    await db_session.commit()
    login(buyer.id)

    response = await getattr(client, method)(path)

    assert response.status_code == 403
    assert response.json() == {"message": "Admin privileges required"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_lists_enriched_payments(client, db_session, login):
    course = await _seed_course(db_session, title="Compilers")
    buyer = UserFactory.create(full_name="Kiran", email="kiran@example.com")
    payment = ManualPaymentFactory.create(course_id=course.id, user_id=buyer.id)
    db_session.add_all([buyer, payment])
    await db_session.commit()
    await _seed_admin(db_session, login)

    response = await client.get("/payments/manual-payments")

    assert response.status_code == 200
    rows = response.json()
    assert len(rows) == 1
    assert rows[0]["id"] == str(payment.id)
    assert rows[0]["user"]["full_name"] == "Kiran"
    assert rows[0]["course"]["title"] == "Compilers"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_list_filter_and_cursor(client, db_session, login):
    course = await _seed_course(db_session)
    db_session.add_all(
        [
            ManualPaymentFactory.create(course_id=course.id),
            ManualPaymentFactory.create(course_id=course.id),
            ManualPaymentFactory.create(
                course_id=course.id, status=ManualPaymentStatus.REJECTED
            ),
        ]
    )
    await db_session.commit()
    await _seed_admin(db_session, login)

    response = await client.get(
        "/payments/manual-payments", params={"status": "pending", "limit": 1}
    )

    assert response.status_code == 200
    assert len(response.json()) == 1
    cursor = response.headers["X-Next-Cursor"]

    next_page = await client.get(
        "/payments/manual-payments",
        params={"status": "pending", "limit": 1, "before": cursor},
    )
    assert len(next_page.json()) == 1
    assert next_page.json()[0]["id"] != response.json()[0]["id"]

    bad_status = await client.get(
        "/payments/manual-payments", params={"status": "settled"}
    )
    assert bad_status.status_code == 400

    bad_cursor = await client.get(
        "/payments/manual-payments", params={"limit": 1, "before": "yesterday"}
    )
    assert bad_cursor.status_code == 400
    assert bad_cursor.json() == {"message": "Invalid cursor"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_approves_payment(client, db_session, login):
    course = await _seed_course(db_session)
    payment = ManualPaymentFactory.create(course_id=course.id)
    db_session.add(payment)
    await db_session.commit()
    admin = await _seed_admin(db_session, login)

    response = await client.post(f"/payments/manual-payments/{payment.id}/approve")

    assert response.status_code == 200, response.text
    assert response.json() == {"message": "Payment approved and enrollment created"}

    await db_session.refresh(payment)
    assert payment.status == ManualPaymentStatus.APPROVED
    assert payment.processed_by == admin.id

    again = await client.post(f"/payments/manual-payments/{payment.id}/approve")
    assert again.status_code == 400
    assert again.json() == {"message": "Payment already approved"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_rejects_payment(client, db_session, login):
    course = await _seed_course(db_session)
    payment = ManualPaymentFactory.create(course_id=course.id)
    db_session.add(payment)
    await db_session.commit()
    await _seed_admin(db_session, login)

    response = await client.post(
        f"/payments/manual-payments/{payment.id}/reject",
        json={"rejection_note": "Amount mismatch"},
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["message"] == "Payment rejected"
    assert data["payment"]["status"] == "rejected"
    assert data["payment"]["rejection_note"] == "Amount mismatch"

    approve = await client.post(f"/payments/manual-payments/{payment.id}/approve")
    assert approve.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_reject_without_body(client, db_session, login):
    course = await _seed_course(db_session)
    payment = ManualPaymentFactory.create(course_id=course.id)
    db_session.add(payment)
    await db_session.commit()
    await _seed_admin(db_session, login)

    response = await client.post(f"/payments/manual-payments/{payment.id}/reject")

    assert response.status_code == 200, response.text
    assert response.json()["payment"]["rejection_note"] is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_approve_unknown_payment(client, db_session, login):
    await _seed_admin(db_session, login)

    response = await client.post(f"/payments/manual-payments/{uuid.uuid4()}/approve")

    assert response.status_code == 404
    assert response.json() == {"message": "Payment not found"}


# ---------------------------------------------------------------------------
# Coupon reporting
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_coupon_usages_and_stats(client, db_session, login):
    course = await _seed_course(db_session, price=1000)
    db_session.add_all(
        [
            CouponFactory.create(code="MS10", discount_percent=10),
            ManualPaymentFactory.create(
                course_id=course.id, amount=900.0, coupon_code="MS10"
            ),
            ManualPaymentFactory.create(course_id=course.id, amount=900.0),
        ]
    )
    await db_session.commit()
    await _seed_admin(db_session, login)

    usages = await client.get("/payments/coupons/usages")
    assert usages.status_code == 200
    assert [row["inferred"] for row in usages.json()] == [True, False]

    explicit_only = await client.get(
        "/payments/coupons/usages", params={"include_inferred": "false"}
    )
    assert [row["inferred"] for row in explicit_only.json()] == [False]

    for flag in ("0", "no", "off"):
        response = await client.get(
            "/payments/coupons/usages", params={"include_inferred": flag}
        )
        assert [row["inferred"] for row in response.json()] == [False]

    bad_flag = await client.get(
        "/payments/coupons/usages", params={"include_inferred": "maybe"}
    )
    assert bad_flag.status_code == 400

    stats = await client.get("/payments/coupons/stats")
    assert stats.status_code == 200
    assert stats.json() == {"stats": {"MS10": 1}}
