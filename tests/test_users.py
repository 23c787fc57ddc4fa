"""
Tests for staff account management.
"""
from pacigest.auth.models import User
from pacigest.core.audit_models import AuditLog
from pacigest.core.permissions import Capability, Role, STAFF_DEFAULT_CAPABILITIES

STAFF = {"email": "Nurse@Example.com", "first_name": "Rosa", "last_name": "Diaz"}


def test_doctor_creates_staff_with_default_permissions(client, db, headers, sender, doctor):
    response = client.post("/api/users/", json=STAFF, headers=headers(doctor))
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["email"] == "nurse@example.com"
    assert data["role"] == "staff"
    assert data["doctor_id"] == doctor.id
    assert data["subscription_status"] is None
    assert set(data["permissions"]) == {c.value for c in STAFF_DEFAULT_CAPABILITIES}
    assert "temporary_password" not in data

    [invitation] = sender.of_kind("staff_invitation")
    assert invitation.to == "nurse@example.com"
    temporary_password = invitation.context["temporary_password"]

    login = client.post("/api/auth/login", json={"email": "nurse@example.com", "password": temporary_password})
    assert login.status_code == 200
    assert db.query(AuditLog).filter(AuditLog.action == "STAFF_CREATED").count() == 1


def test_staff_grant_outside_ceiling_is_rejected(client, headers, doctor):
    payload = {**STAFF, "permissions": [Capability.WRITE_PRESCRIPTIONS.value]}
    response = client.post("/api/users/", json=payload, headers=headers(doctor))
    assert response.status_code == 400


def test_duplicate_staff_email_conflicts(client, headers, doctor, staff):
    payload = {**STAFF, "email": staff.email}
    response = client.post("/api/users/", json=payload, headers=headers(doctor))
    assert response.status_code == 409
    assert response.json()["code"] == "EMAIL_EXISTS"


def test_staff_cannot_manage_staff(client, headers, staff):
    response = client.post("/api/users/", json=STAFF, headers=headers(staff))
    assert response.status_code == 403


def test_list_staff_only_shows_own(client, headers, make_user, doctor, other_doctor, staff):
    make_user("elsewhere@example.com", role=Role.STAFF, doctor=other_doctor)
    response = client.get("/api/users/", headers=headers(doctor))
    body = response.json()
    assert body["total"] == 1
    assert body["data"][0]["id"] == staff.id


def test_get_other_doctors_staff_is_forbidden(client, headers, other_doctor, staff):
    response = client.get(f"/api/users/{staff.id}", headers=headers(other_doctor))
    assert response.status_code == 403


def test_get_doctor_as_staff_is_404(client, headers, doctor, other_doctor):
    response = client.get(f"/api/users/{other_doctor.id}", headers=headers(doctor))
    assert response.status_code == 404


def test_update_staff_permissions_is_audited(client, db, headers, doctor, staff):
    response = client.patch(
        f"/api/users/{staff.id}",
        json={"permissions": [Capability.VIEW_PATIENTS.value, Capability.VIEW_MEDICAL_RECORDS.value]},
        headers=headers(doctor),
    )
    assert response.status_code == 200
    assert set(response.json()["data"]["permissions"]) == {"can_view_patients", "can_view_medical_records"}
    assert db.query(AuditLog).filter(AuditLog.action == "STAFF_ACCESS_CHANGED").count() == 1

    # The narrowed grant applies immediately
    blocked = client.get("/api/appointments/", headers=headers(staff))
    assert blocked.status_code == 403


def test_update_staff_rejects_null_fields(client, db, headers, doctor, staff):
    response = client.patch(
        f"/api/users/{staff.id}", json={"last_name": None, "is_active": None}, headers=headers(doctor)
    )
    assert response.status_code == 400
    assert {error["field"] for error in response.json()["errors"]} == {"last_name", "is_active"}
    assert db.get(User, staff.id).is_active is True


def test_deactivated_staff_loses_access(client, db, headers, doctor, staff):
    client.patch(f"/api/users/{staff.id}", json={"is_active": False}, headers=headers(doctor))
    assert db.get(User, staff.id).is_active is False
    response = client.get("/api/patients/", headers=headers(staff))
    assert response.status_code == 401
