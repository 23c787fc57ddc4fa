"""
Tests for the reminder scheduler.
"""
import asyncio
import threading
from datetime import date, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from pacigest.appointments.models import Appointment, AppointmentStatus
from pacigest.auth.models import SubscriptionPlan, SubscriptionStatus
from pacigest.core.clock import Clock, utcnow
from pacigest.jobs.reminders import ReminderScheduler
from pacigest.patients.models import Gender, Patient


class FixedClock(Clock):
    def __init__(self, now):
        self._now = now

    def now(self):
        return self._now


@pytest.fixture
def now():
    return utcnow().replace(microsecond=0)


@pytest.fixture
def scheduler(db, sender, now):
    session_factory = sessionmaker(bind=db.get_bind(), autoflush=False, autocommit=False)
    return ReminderScheduler(
        session_factory,
        sender,
        clock=FixedClock(now),
        interval_seconds=3600,
        window=timedelta(minutes=30),
        trial_warning_days=3,
    )


@pytest.fixture
def patient(db, doctor):
    patient = Patient(
        medical_record_number="PAC-20240101-0001",
        first_name="Ana",
        last_name="Lopez",
        date_of_birth=date(1985, 4, 12),
        gender=Gender.FEMALE,
        email="ana.lopez@example.com",
        created_by=doctor.id,
    )
    patient.doctors.append(doctor)
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


@pytest.fixture
def book(db, doctor, patient):
    def _book(scheduled_at, status=AppointmentStatus.CONFIRMED):
        count = db.query(Appointment).count()
        appointment = Appointment(
            appointment_number=f"APT-20240101-{count + 1:04d}",
            patient_id=patient.id,
            doctor_id=doctor.id,
            created_by=doctor.id,
            scheduled_at=scheduled_at,
            reason="Control",
            status=status,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _book


def run(scheduler):
    return asyncio.run(scheduler.tick())


def test_24h_reminder_is_sent_once(db, sender, scheduler, book, now):
    appointment = book(now + timedelta(hours=24, minutes=10))

    report = run(scheduler)
    assert report.reminders_24h == 1
    assert report.reminders_2h == 0
    [message] = sender.of_kind("appointment_reminder_24h")
    assert message.to == "ana.lopez@example.com"

    db.refresh(appointment)
    assert appointment.reminder_24h_sent_at is not None

    second = run(scheduler)
    assert second.reminders_24h == 0
    assert len(sender.of_kind("appointment_reminder_24h")) == 1


def test_2h_reminder_window(sender, scheduler, book, now):
    book(now + timedelta(hours=2) - timedelta(minutes=20))
    book(now + timedelta(hours=3))

    report = run(scheduler)
    assert report.reminders_2h == 1
    assert report.reminders_24h == 0
    assert len(sender.of_kind("appointment_reminder_2h")) == 1


def test_only_confirmed_appointments_get_reminders(sender, scheduler, book, now):
    book(now + timedelta(hours=24), status=AppointmentStatus.SCHEDULED)
    book(now + timedelta(hours=24), status=AppointmentStatus.CANCELLED)

    report = run(scheduler)
    assert report.sent == 0
    assert sender.messages == []


def test_patient_without_email_is_skipped(db, sender, scheduler, book, patient, now):
    patient.email = None
    db.commit()
    book(now + timedelta(hours=24))

    report = run(scheduler)
    assert report.reminders_24h == 0
    assert report.failures == []


def test_failed_send_leaves_marker_for_retry(db, sender, scheduler, book, now):
    appointment = book(now + timedelta(hours=24))
    sender.fail = True

    report = run(scheduler)
    assert report.reminders_24h == 0
    assert len(report.failures) == 1
    assert report.failures[0]["appointment_id"] == appointment.id
    db.refresh(appointment)
    assert appointment.reminder_24h_sent_at is None

    sender.fail = False
    retry = run(scheduler)
    assert retry.reminders_24h == 1


def test_one_failure_does_not_stop_the_batch(db, sender, scheduler, book, make_user, now):
    book(now + timedelta(hours=24))
    make_user("ending@example.com", trial_ends_at=now + timedelta(days=1))

    calls = []
    original = sender.send

    async def flaky_send(message):
        calls.append(message.kind)
        if message.kind == "appointment_reminder_24h":
            raise RuntimeError("template exploded")
        await original(message)

    sender.send = flaky_send

    report = run(scheduler)
    assert len(report.failures) == 1
    assert report.trial_reminders == 1


def test_trial_expiry_flips_status_and_notifies_once(db, sender, scheduler, make_user, now):
    lapsed = make_user("lapsed@example.com", trial_ends_at=now - timedelta(hours=1))

    report = run(scheduler)
    assert report.trials_expired == 1
    db.refresh(lapsed)
    assert lapsed.subscription_status == SubscriptionStatus.EXPIRED
    assert lapsed.trial_expired_notified_at is not None
    assert [m.to for m in sender.of_kind("trial_expired")] == ["lapsed@example.com"]

    assert run(scheduler).trials_expired == 0


def test_already_expired_trial_is_still_notified(db, sender, scheduler, make_user, now):
    make_user(
        "flipped@example.com",
        trial_ends_at=now - timedelta(days=2),
        subscription_status=SubscriptionStatus.EXPIRED,
    )
    assert run(scheduler).trials_expired == 1


def test_paid_subscription_is_not_treated_as_trial(db, sender, scheduler, make_user, now):
    make_user(
        "paid@example.com",
        trial_ends_at=now - timedelta(days=10),
        subscription_status=SubscriptionStatus.ACTIVE,
        subscription_plan=SubscriptionPlan.PREMIUM_INDIVIDUAL,
        subscription_end_date=now + timedelta(days=20),
    )
    report = run(scheduler)
    assert report.trials_expired == 0
    assert sender.of_kind("trial_expired") == []


def test_trial_reminder_within_warning_window(db, sender, scheduler, make_user, now):
    soon = make_user("soon@example.com", trial_ends_at=now + timedelta(days=1, hours=12))
    make_user("later@example.com", trial_ends_at=now + timedelta(days=10))

    report = run(scheduler)
    assert report.trial_reminders == 1
    [message] = sender.of_kind("trial_reminder")
    assert message.to == "soon@example.com"
    assert message.context["days_left"] == 2

    db.refresh(soon)
    assert soon.trial_reminder_sent_at is not None
    assert run(scheduler).trial_reminders == 0


def test_database_work_runs_in_worker_threads(db, sender, book, now):
    book(now + timedelta(hours=24))
    factory = sessionmaker(bind=db.get_bind(), autoflush=False, autocommit=False)
    threads = []

    def tracking_factory():
        threads.append(threading.get_ident())
        return factory()

    scheduler = ReminderScheduler(tracking_factory, sender, clock=FixedClock(now), window=timedelta(minutes=30))
    report = run(scheduler)

    assert report.reminders_24h == 1
    assert threads
    assert threading.get_ident() not in threads


def test_start_and_stop(sender, scheduler, book, now):
    book(now + timedelta(hours=24))

    async def main():
        scheduler.start()
        for _ in range(20):
            await asyncio.sleep(0.01)
            if sender.messages:
                break
        await scheduler.stop()

    asyncio.run(main())
    assert len(sender.of_kind("appointment_reminder_24h")) == 1


def test_run_forever_survives_a_failing_tick(sender, now):
    attempts = []

    def broken_factory():
        attempts.append(1)
        raise RuntimeError("database down")

    scheduler = ReminderScheduler(broken_factory, sender, clock=FixedClock(now), interval_seconds=0)

    async def main():
        scheduler.start()
        for _ in range(50):
            await asyncio.sleep(0.01)
            if len(attempts) >= 2:
                break
        await scheduler.stop()

    asyncio.run(main())
    assert len(attempts) >= 2
