"""
Tests for medical records and the files attached to them.
"""
import pytest

from pacigest.config import settings
from pacigest.core.clock import utcnow
from pacigest.core.permissions import Capability, Role


@pytest.fixture
def patient(create_patient, doctor):
    return create_patient(doctor)


@pytest.fixture
def record(client, headers, doctor, patient):
    payload = {
        "patient_id": patient["id"],
        "reason": "Headache",
        "symptoms": ["headache", "nausea"],
        "vital_signs": {"blood_pressure": "120/80", "weight": 70, "height": 175},
        "diagnosis": "Migraine",
        "icd_code": "G43.9",
    }
    response = client.post("/api/medical-records/", json=payload, headers=headers(doctor))
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_create_record_computes_bmi(record, doctor):
    assert record["doctor_id"] == doctor.id
    assert record["diagnosis"] == "Migraine"
    assert record["vital_signs"]["blood_pressure"] == "120/80"
    assert record["bmi"] == 22.86


def test_record_requires_diagnosis(client, headers, doctor, patient):
    response = client.post(
        "/api/medical-records/", json={"patient_id": patient["id"], "reason": "Cough"}, headers=headers(doctor)
    )
    assert response.status_code == 400


def test_record_rejects_appointment_of_other_patient(client, headers, create_patient, doctor, patient):
    other = create_patient(doctor, first_name="Luis")
    appointment = client.post(
        "/api/appointments/",
        json={"patient_id": other["id"], "scheduled_at": utcnow().isoformat(), "reason": "x"},
        headers=headers(doctor),
    ).json()["data"]

    response = client.post(
        "/api/medical-records/",
        json={"patient_id": patient["id"], "appointment_id": appointment["id"], "reason": "x", "diagnosis": "y"},
        headers=headers(doctor),
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "appointment_id"


def test_list_patient_records(client, headers, record, doctor, patient):
    response = client.get(f"/api/medical-records/patient/{patient['id']}", headers=headers(doctor))
    assert response.status_code == 200
    assert [r["id"] for r in response.json()["data"]] == [record["id"]]


def test_staff_reads_but_cannot_write_records(client, headers, make_user, record, doctor, patient):
    reader = make_user(
        "reader@example.com", role=Role.STAFF, doctor=doctor, permissions=[Capability.VIEW_MEDICAL_RECORDS.value]
    )
    assert client.get(f"/api/medical-records/{record['id']}", headers=headers(reader)).status_code == 200

    response = client.put(f"/api/medical-records/{record['id']}", json={"notes": "x"}, headers=headers(reader))
    assert response.status_code == 403


def test_update_and_delete_record(client, headers, record, doctor):
    update = client.put(
        f"/api/medical-records/{record['id']}", json={"treatment": "Rest and fluids"}, headers=headers(doctor)
    )
    assert update.status_code == 200
    assert update.json()["data"]["treatment"] == "Rest and fluids"

    delete = client.delete(f"/api/medical-records/{record['id']}", headers=headers(doctor))
    assert delete.status_code == 200
    assert client.get("/api/medical-records/", headers=headers(doctor)).json()["total"] == 0


def test_update_rejects_null_diagnosis(client, headers, record, doctor):
    response = client.put(
        f"/api/medical-records/{record['id']}", json={"diagnosis": None}, headers=headers(doctor)
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "diagnosis"


def test_other_doctor_cannot_read_record(client, headers, record, other_doctor):
    response = client.get(f"/api/medical-records/{record['id']}", headers=headers(other_doctor))
    assert response.status_code == 403


def file_payload(patient, record=None, **overrides):
    payload = {
        "patient_id": patient["id"],
        "medical_record_id": record["id"] if record else None,
        "file_name": "cbc-2024.pdf",
        "original_name": "Blood count.pdf",
        "file_type": "pdf",
        "mime_type": "application/pdf",
        "file_size": 120000,
        "storage_path": "patients/1/cbc-2024.pdf",
        "category": "lab_results",
        "tags": ["blood"],
    }
    payload.update(overrides)
    return payload


def test_attach_file_uses_cdn_url(client, headers, monkeypatch, record, doctor, patient):
    monkeypatch.setattr(settings, "bunny_cdn_url", "https://cdn.example.com/")
    response = client.post("/api/medical-files/", json=file_payload(patient, record), headers=headers(doctor))
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["url"] == "https://cdn.example.com/patients/1/cbc-2024.pdf"
    assert data["uploaded_by"] == doctor.id

    listed = client.get(f"/api/medical-files/medical-record/{record['id']}", headers=headers(doctor)).json()
    assert [f["id"] for f in listed["data"]] == [data["id"]]

    by_category = client.get(
        f"/api/medical-files/patient/{patient['id']}?category=imaging", headers=headers(doctor)
    ).json()
    assert by_category["total"] == 0


def test_attach_file_without_cdn_needs_url(client, headers, monkeypatch, doctor, patient):
    monkeypatch.setattr(settings, "bunny_cdn_url", None)
    response = client.post("/api/medical-files/", json=file_payload(patient), headers=headers(doctor))
    assert response.status_code == 400

    payload = file_payload(patient, url="https://files.example.com/cbc.pdf")
    response = client.post("/api/medical-files/", json=payload, headers=headers(doctor))
    assert response.status_code == 201
    assert response.json()["data"]["url"] == "https://files.example.com/cbc.pdf"


def test_file_size_limit(client, headers, doctor, patient):
    payload = file_payload(patient, url="https://files.example.com/big.pdf", file_size=51 * 1024 * 1024)
    response = client.post("/api/medical-files/", json=payload, headers=headers(doctor))
    assert response.status_code == 400


def test_update_and_delete_file(client, headers, doctor, patient):
    created = client.post(
        "/api/medical-files/", json=file_payload(patient, url="https://files.example.com/a.pdf"), headers=headers(doctor)
    ).json()["data"]

    update = client.put(
        f"/api/medical-files/{created['id']}", json={"description": "Fasting sample"}, headers=headers(doctor)
    )
    assert update.status_code == 200
    assert update.json()["data"]["description"] == "Fasting sample"

    delete = client.delete(f"/api/medical-files/{created['id']}", headers=headers(doctor))
    assert delete.status_code == 200
    listed = client.get(f"/api/medical-files/patient/{patient['id']}", headers=headers(doctor)).json()
    assert listed["total"] == 0


def test_update_file_rejects_null_category(client, headers, doctor, patient):
    created = client.post(
        "/api/medical-files/", json=file_payload(patient, url="https://files.example.com/a.pdf"), headers=headers(doctor)
    ).json()["data"]

    response = client.put(f"/api/medical-files/{created['id']}", json={"category": None}, headers=headers(doctor))
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "category"
