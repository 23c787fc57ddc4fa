"""
Tests for appointment scheduling and its lifecycle.
"""
from datetime import timedelta

import pytest

from pacigest.appointments.models import Appointment
from pacigest.core.audit_models import AuditLog
from pacigest.core.clock import utcnow


@pytest.fixture
def patient(create_patient, doctor):
    return create_patient(doctor)


@pytest.fixture
def schedule(client, headers, doctor, patient):
    """POST an appointment for ``patient`` and return the response data."""
    def _schedule(user=None, when=None, **overrides):
        payload = {
            "patient_id": patient["id"],
            "scheduled_at": (when or utcnow() + timedelta(days=2)).isoformat(),
            "reason": "Control visit",
            **overrides,
        }
        response = client.post("/api/appointments/", json=payload, headers=headers(user or doctor))
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _schedule


def test_create_appointment_emails_patient(schedule, sender, patient):
    appointment = schedule()
    assert appointment["status"] == "scheduled"
    assert appointment["appointment_number"].startswith("APT-")
    assert appointment["duration_minutes"] == 30

    [message] = sender.of_kind("appointment_confirmation")
    assert message.to == patient["email"]
    assert message.context["appointment_number"] == appointment["appointment_number"]


def test_create_appointment_without_patient_email(client, headers, sender, doctor, create_patient):
    patient = create_patient(doctor, email=None)
    response = client.post(
        "/api/appointments/",
        json={"patient_id": patient["id"], "scheduled_at": utcnow().isoformat(), "reason": "Checkup"},
        headers=headers(doctor),
    )
    assert response.status_code == 201
    assert sender.messages == []


def test_create_appointment_survives_email_failure(schedule, db, sender):
    sender.fail = True
    appointment = schedule()
    assert db.get(Appointment, appointment["id"]) is not None
    assert db.query(AuditLog).filter(AuditLog.action == "EMAIL_SEND_FAILED").count() == 1


def test_create_appointment_rejects_bad_duration(client, headers, doctor, patient):
    response = client.post(
        "/api/appointments/",
        json={"patient_id": patient["id"], "scheduled_at": utcnow().isoformat(), "reason": "x", "duration_minutes": 5},
        headers=headers(doctor),
    )
    assert response.status_code == 400


def test_create_appointment_for_other_doctors_patient(client, headers, create_patient, doctor, other_doctor):
    foreign = create_patient(other_doctor)
    response = client.post(
        "/api/appointments/",
        json={"patient_id": foreign["id"], "scheduled_at": utcnow().isoformat(), "reason": "x"},
        headers=headers(doctor),
    )
    assert response.status_code == 403


def test_staff_schedules_for_doctor(schedule, staff, doctor):
    appointment = schedule(user=staff)
    assert appointment["doctor_id"] == doctor.id
    assert appointment["created_by"] == staff.id


def test_confirm_then_complete(client, headers, schedule, doctor):
    appointment = schedule()
    confirm = client.patch(f"/api/appointments/{appointment['id']}/confirm", headers=headers(doctor))
    assert confirm.status_code == 200
    assert confirm.json()["data"]["status"] == "confirmed"
    assert confirm.json()["data"]["confirmed_by"] == doctor.id

    complete = client.patch(f"/api/appointments/{appointment['id']}/complete", headers=headers(doctor))
    assert complete.status_code == 200
    assert complete.json()["data"]["status"] == "completed"
    assert complete.json()["data"]["completed_at"] is not None


def test_terminal_appointments_cannot_transition(client, headers, schedule, doctor):
    appointment = schedule()
    client.patch(f"/api/appointments/{appointment['id']}/complete", headers=headers(doctor))

    for action in ("confirm", "complete"):
        response = client.patch(f"/api/appointments/{appointment['id']}/{action}", headers=headers(doctor))
        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_TRANSITION"

    cancel = client.patch(
        f"/api/appointments/{appointment['id']}/cancel", json={"reason": "late"}, headers=headers(doctor)
    )
    assert cancel.status_code == 409

    update = client.put(f"/api/appointments/{appointment['id']}", json={"notes": "x"}, headers=headers(doctor))
    assert update.status_code == 409


def test_confirm_twice_is_rejected(client, headers, schedule, doctor):
    appointment = schedule()
    client.patch(f"/api/appointments/{appointment['id']}/confirm", headers=headers(doctor))
    response = client.patch(f"/api/appointments/{appointment['id']}/confirm", headers=headers(doctor))
    assert response.status_code == 409


def test_cancel_requires_reason_and_notifies(client, db, headers, sender, schedule, doctor):
    appointment = schedule()
    missing = client.patch(f"/api/appointments/{appointment['id']}/cancel", json={}, headers=headers(doctor))
    assert missing.status_code == 400

    response = client.patch(
        f"/api/appointments/{appointment['id']}/cancel", json={"reason": "Doctor unavailable"}, headers=headers(doctor)
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "cancelled"
    assert data["cancellation_reason"] == "Doctor unavailable"
    assert data["cancelled_by"] == doctor.id

    [message] = sender.of_kind("appointment_cancellation")
    assert message.context["reason"] == "Doctor unavailable"
    assert db.query(AuditLog).filter(AuditLog.action == "APPOINTMENT_CANCELLED").count() == 1


def test_reschedule_resets_reminder_markers(client, db, headers, schedule, doctor):
    appointment = schedule()
    row = db.get(Appointment, appointment["id"])
    row.reminder_24h_sent_at = utcnow()
    db.commit()

    new_time = (utcnow() + timedelta(days=5)).isoformat()
    response = client.put(
        f"/api/appointments/{appointment['id']}", json={"scheduled_at": new_time}, headers=headers(doctor)
    )
    assert response.status_code == 200
    assert response.json()["data"]["reminder_24h_sent_at"] is None


def test_update_rejects_null_schedule(client, db, headers, schedule, doctor):
    appointment = schedule()
    response = client.put(
        f"/api/appointments/{appointment['id']}",
        json={"scheduled_at": None, "reason": None, "duration_minutes": None},
        headers=headers(doctor),
    )
    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert fields == {"scheduled_at", "reason", "duration_minutes"}
    assert db.get(Appointment, appointment["id"]).scheduled_at is not None


def test_list_filters_by_status_and_day(client, headers, schedule, doctor):
    tomorrow = utcnow().replace(hour=12, minute=0, second=0, microsecond=0) + timedelta(days=1)
    first = schedule(when=tomorrow)
    schedule(when=tomorrow + timedelta(days=3))
    client.patch(f"/api/appointments/{first['id']}/confirm", headers=headers(doctor))

    everything = client.get("/api/appointments/", headers=headers(doctor)).json()
    assert everything["total"] == 2
    assert everything["limit"] == 20

    confirmed = client.get("/api/appointments/?status=confirmed", headers=headers(doctor)).json()
    assert [a["id"] for a in confirmed["data"]] == [first["id"]]

    on_day = client.get(f"/api/appointments/?date={tomorrow.date().isoformat()}", headers=headers(doctor)).json()
    assert [a["id"] for a in on_day["data"]] == [first["id"]]


def test_today_excludes_cancelled(client, headers, schedule, doctor):
    now = utcnow()
    kept = schedule(when=now)
    dropped = schedule(when=now)
    client.patch(f"/api/appointments/{dropped['id']}/cancel", json={"reason": "x"}, headers=headers(doctor))

    today = client.get("/api/appointments/today", headers=headers(doctor)).json()
    assert [a["id"] for a in today["data"]] == [kept["id"]]


def test_soft_delete(client, headers, schedule, doctor):
    appointment = schedule()
    response = client.delete(f"/api/appointments/{appointment['id']}", headers=headers(doctor))
    assert response.status_code == 200
    assert client.get("/api/appointments/", headers=headers(doctor)).json()["total"] == 0
    assert client.get(f"/api/appointments/{appointment['id']}", headers=headers(doctor)).status_code == 200


def test_other_doctor_cannot_see_appointment(client, headers, schedule, other_doctor):
    appointment = schedule()
    response = client.get(f"/api/appointments/{appointment['id']}", headers=headers(other_doctor))
    assert response.status_code == 403
