"""
Tests for registration, email verification, login and password management.
"""
from datetime import timedelta

from pacigest.auth.models import User, SubscriptionStatus
from pacigest.core.audit_models import AuditLog
from pacigest.core.clock import as_utc, utcnow

PASSWORD = "Password123"

REGISTRATION = {
    "email": "New.Doctor@Example.com",
    "password": "Password123",
    "first_name": "Maria",
    "last_name": "Perez",
    "specialty": "Cardiology",
}


def register(client, **overrides):
    return client.post("/api/auth/register", json={**REGISTRATION, **overrides})


def test_register_creates_unverified_doctor_on_trial(client, db, sender):
    response = register(client)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["email_sent"] is True

    user = db.get(User, body["user_id"])
    assert user.email == "new.doctor@example.com"
    assert user.email_verified is False
    assert user.subscription_status == SubscriptionStatus.TRIAL
    remaining = as_utc(user.trial_ends_at) - utcnow()
    assert timedelta(days=29) < remaining <= timedelta(days=30)

    [message] = sender.of_kind("verification_code")
    assert message.to == "new.doctor@example.com"
    code = message.context["code"]
    assert len(code) == 6 and code.isdigit()
    assert user.verification_code_hash != code


def test_register_duplicate_email_conflicts(client, doctor):
    response = register(client, email="DOCTOR@example.com")
    assert response.status_code == 409
    assert response.json()["code"] == "EMAIL_EXISTS"


def test_register_rejects_short_password(client):
    response = register(client, password="short")
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_register_survives_email_failure(client, db, sender):
    sender.fail = True
    response = register(client)
    assert response.status_code == 201
    body = response.json()
    assert body["email_sent"] is False
    assert db.get(User, body["user_id"]) is not None
    assert db.query(AuditLog).filter(AuditLog.action == "EMAIL_SEND_FAILED").count() == 1


def test_verify_email_returns_token_and_sends_welcome(client, sender):
    user_id = register(client).json()["user_id"]
    code = sender.of_kind("verification_code")[0].context["code"]

    response = client.post("/api/auth/verify-email", json={"user_id": user_id, "code": code})
    assert response.status_code == 200
    body = response.json()
    assert body["token"]
    assert body["user"]["email_verified"] is True
    assert len(sender.of_kind("welcome")) == 1

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["id"] == user_id


def test_verify_email_wrong_code(client, sender):
    user_id = register(client).json()["user_id"]
    code = sender.of_kind("verification_code")[0].context["code"]
    wrong = "000000" if code != "000000" else "111111"

    response = client.post("/api/auth/verify-email", json={"user_id": user_id, "code": wrong})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_CODE"


def test_verify_email_expired_code(client, db, sender):
    user_id = register(client).json()["user_id"]
    code = sender.of_kind("verification_code")[0].context["code"]
    user = db.get(User, user_id)
    user.verification_code_expires = utcnow() - timedelta(minutes=1)
    db.commit()

    response = client.post("/api/auth/verify-email", json={"user_id": user_id, "code": code})
    assert response.status_code == 400
    assert response.json()["code"] == "CODE_EXPIRED"


def test_verify_email_twice_conflicts(client, sender):
    user_id = register(client).json()["user_id"]
    code = sender.of_kind("verification_code")[0].context["code"]
    client.post("/api/auth/verify-email", json={"user_id": user_id, "code": code})

    response = client.post("/api/auth/verify-email", json={"user_id": user_id, "code": code})
    assert response.status_code == 409
    assert response.json()["code"] == "ALREADY_VERIFIED"


def test_resend_verification_replaces_code(client, sender):
    user_id = register(client).json()["user_id"]
    first = sender.of_kind("verification_code")[0].context["code"]

    response = client.post("/api/auth/resend-verification", json={"email": REGISTRATION["email"]})
    assert response.status_code == 200
    second = sender.of_kind("verification_code")[1].context["code"]

    if first != second:
        stale = client.post("/api/auth/verify-email", json={"user_id": user_id, "code": first})
        assert stale.status_code == 400
    fresh = client.post("/api/auth/verify-email", json={"user_id": user_id, "code": second})
    assert fresh.status_code == 200


def test_resend_verification_unknown_email_is_silent(client, sender):
    response = client.post("/api/auth/resend-verification", json={"email": "nobody@example.com"})
    assert response.status_code == 200
    assert sender.messages == []


def test_resend_verification_for_verified_account_conflicts(client, doctor):
    response = client.post("/api/auth/resend-verification", json={"email": doctor.email})
    assert response.status_code == 409


def test_login_success(client, db, doctor):
    response = client.post("/api/auth/login", json={"email": "Doctor@Example.com", "password": PASSWORD})
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == doctor.email
    assert "password_hash" not in body["user"]
    db.refresh(doctor)
    assert doctor.last_login is not None


def test_login_wrong_password_is_audited(client, db, doctor):
    response = client.post("/api/auth/login", json={"email": doctor.email, "password": "WrongPassword"})
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_CREDENTIALS"
    assert db.query(AuditLog).filter(AuditLog.action == "LOGIN_FAILED").count() == 1


def test_login_unknown_email_looks_like_wrong_password(client):
    response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_CREDENTIALS"


def test_login_requires_verified_email(client, make_user):
    make_user("pending@example.com", email_verified=False)
    response = client.post("/api/auth/login", json={"email": "pending@example.com", "password": PASSWORD})
    assert response.status_code == 401
    assert response.json()["code"] == "EMAIL_NOT_VERIFIED"


def test_login_rejects_deactivated_account(client, make_user):
    make_user("gone@example.com", is_active=False)
    response = client.post("/api/auth/login", json={"email": "gone@example.com", "password": PASSWORD})
    assert response.status_code == 401
    assert response.json()["code"] == "ACCOUNT_INACTIVE"


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["code"] == "TOKEN_MISSING"


def test_me_rejects_garbage_token(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_TOKEN"


def test_forgot_and_reset_password(client, db, sender, doctor):
    response = client.post("/api/auth/forgot-password", json={"email": doctor.email})
    assert response.status_code == 200
    [message] = sender.of_kind("password_reset")
    token = message.context["token"]
    assert token in message.context["link"]

    response = client.post("/api/auth/reset-password", json={"token": token, "new_password": "BrandNew123"})
    assert response.status_code == 200
    assert len(sender.of_kind("password_changed")) == 1

    login = client.post("/api/auth/login", json={"email": doctor.email, "password": "BrandNew123"})
    assert login.status_code == 200

    reused = client.post("/api/auth/reset-password", json={"token": token, "new_password": "Another123"})
    assert reused.status_code == 400
    assert reused.json()["code"] == "INVALID_RESET_TOKEN"


def test_forgot_password_unknown_email_gets_same_answer(client, sender, doctor):
    known = client.post("/api/auth/forgot-password", json={"email": doctor.email})
    unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json()["message"] == unknown.json()["message"]
    assert len(sender.of_kind("password_reset")) == 1


def test_reset_password_expired_token(client, db, sender, doctor):
    client.post("/api/auth/forgot-password", json={"email": doctor.email})
    token = sender.of_kind("password_reset")[0].context["token"]
    db.refresh(doctor)
    doctor.reset_token_expires = utcnow() - timedelta(minutes=1)
    db.commit()

    response = client.post("/api/auth/reset-password", json={"token": token, "new_password": "BrandNew123"})
    assert response.status_code == 400
    assert response.json()["code"] == "RESET_TOKEN_EXPIRED"


def test_change_password(client, headers, sender, doctor):
    response = client.put(
        "/api/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "Changed123"},
        headers=headers(doctor),
    )
    assert response.status_code == 200
    assert len(sender.of_kind("password_changed")) == 1

    login = client.post("/api/auth/login", json={"email": doctor.email, "password": "Changed123"})
    assert login.status_code == 200


def test_change_password_wrong_current(client, headers, doctor):
    response = client.put(
        "/api/auth/change-password",
        json={"current_password": "NotMyPassword", "new_password": "Changed123"},
        headers=headers(doctor),
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "current_password"


def test_update_profile(client, headers, doctor):
    response = client.put(
        "/api/auth/update-profile",
        json={"specialty": "Pediatrics", "consultation_fee": "45.50", "language": "en"},
        headers=headers(doctor),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["specialty"] == "Pediatrics"
    assert data["language"] == "en"
    assert data["email"] == doctor.email


def test_update_profile_rejects_null_name(client, headers, doctor):
    response = client.put("/api/auth/update-profile", json={"first_name": None}, headers=headers(doctor))
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "first_name"
