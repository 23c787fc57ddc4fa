"""
Periodic reminder job.

Each tick sends 24h and 2h appointment reminders, expires finished trials and
warns doctors whose trial is about to end. Every candidate carries a "sent"
marker that is set only after a successful send, so a failed send is retried
on the next tick. The marker is not a lock: two overlapping ticks can both
pick the same candidate.
"""
import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from sqlalchemy.orm import Session

from ..appointments.models import Appointment, AppointmentStatus
from ..auth.models import User, SubscriptionStatus
from ..config import settings
from ..core.audit_service import create_audit_log
from ..core.clock import Clock, SystemClock, as_utc
from ..core.permissions import Role
from ..notifications import templates
from ..notifications.sender import EmailMessage, NotificationSender

# Set up logging
logger = logging.getLogger(__name__)

# (label, lead time, marker column)
APPOINTMENT_LEADS = (
    ("24h", timedelta(hours=24), "reminder_24h_sent_at"),
    ("2h", timedelta(hours=2), "reminder_2h_sent_at"),
)

T = TypeVar("T")


@dataclass
class TickReport:
    """Counts of what one tick sent, plus the sends that failed."""
    started_at: datetime
    reminders_24h: int = 0
    reminders_2h: int = 0
    trials_expired: int = 0
    trial_reminders: int = 0
    failures: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return self.reminders_24h + self.reminders_2h + self.trials_expired + self.trial_reminders


class ReminderScheduler:
    """
    Runs reminder ticks on a fixed interval.

    Args:
        session_factory: Callable returning a new database session
        sender: Notification sender
        clock: Time source (``SystemClock`` by default)
        interval_seconds: Pause between ticks
        window: Half-width of the window around each reminder lead time
        trial_warning_days: How far ahead of the trial end the warning goes out
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        sender: NotificationSender,
        clock: Optional[Clock] = None,
        interval_seconds: int = settings.scheduler_interval_seconds,
        window: timedelta = timedelta(minutes=settings.reminder_window_minutes),
        trial_warning_days: int = settings.trial_warning_days,
    ):
        self.session_factory = session_factory
        self.sender = sender
        self.clock = clock or SystemClock()
        self.interval_seconds = interval_seconds
        self.window = window
        self.trial_warning_days = trial_warning_days
        self._task: Optional[asyncio.Task] = None

    async def tick(self) -> TickReport:
        """
        Run one pass over every reminder kind.

        Queries and commits run in worker threads, each with its own session; only
        the sends are awaited on the event loop.
        """
        now = self.clock.now()
        report = TickReport(started_at=now)

        for label, lead, marker in APPOINTMENT_LEADS:
            pending = await self._run(self._appointment_reminders, now, label, lead, marker)
            for appointment_id, message in pending:
                if await self._send(message, report, appointment_id=appointment_id):
                    await self._run(self._mark, Appointment, appointment_id, marker, now)
                    if label == "24h":
                        report.reminders_24h += 1
                    else:
                        report.reminders_2h += 1

        for doctor_id, message in await self._run(self._expire_trials, now):
            if await self._send(message, report, user_id=doctor_id):
                await self._run(self._mark, User, doctor_id, "trial_expired_notified_at", now)
                report.trials_expired += 1

        for doctor_id, message in await self._run(self._trial_reminders, now):
            if await self._send(message, report, user_id=doctor_id):
                await self._run(self._mark, User, doctor_id, "trial_reminder_sent_at", now)
                report.trial_reminders += 1

        logger.info(
            f"Reminder tick at {now.isoformat()}: 24h={report.reminders_24h} 2h={report.reminders_2h} "
            f"trials_expired={report.trials_expired} trial_reminders={report.trial_reminders} "
            f"failures={len(report.failures)}"
        )
        return report

    async def _run(self, work: Callable[..., T], *args) -> T:
        """Run ``work(db, *args)`` in a worker thread with a session of its own."""
        def in_session() -> T:
            db = self.session_factory()
            try:
                return work(db, *args)
            finally:
                db.close()

        return await asyncio.to_thread(in_session)

    def _appointment_reminders(
        self, db: Session, now: datetime, label: str, lead: timedelta, marker: str
    ) -> List[Tuple[int, EmailMessage]]:
        column = getattr(Appointment, marker)
        target = now + lead
        candidates = (
            db.query(Appointment)
            .filter(
                Appointment.status == AppointmentStatus.CONFIRMED,
                Appointment.is_active.is_(True),
                column.is_(None),
                Appointment.scheduled_at >= target - self.window,
                Appointment.scheduled_at <= target + self.window,
            )
            .order_by(Appointment.scheduled_at)
            .all()
        )

        pending = []
        for appointment in candidates:
            patient = appointment.patient
            if not patient or not patient.email:
                logger.debug(f"Appointment {appointment.id} has no patient email, {label} reminder skipped")
                continue
            message = templates.appointment_reminder_email(
                patient.email,
                patient.full_name,
                appointment.doctor.full_name,
                as_utc(appointment.scheduled_at),
                appointment.appointment_number,
                label,
            )
            pending.append((appointment.id, message))
        return pending

    def _expire_trials(self, db: Session, now: datetime) -> List[Tuple[int, EmailMessage]]:
        """Flip lapsed trials to expired and build the notice for each one not yet told."""
        candidates = (
            db.query(User)
            .filter(
                User.role == Role.DOCTOR,
                User.subscription_status.in_([SubscriptionStatus.TRIAL, SubscriptionStatus.EXPIRED]),
                User.subscription_end_date.is_(None),
                User.trial_ends_at.isnot(None),
                User.trial_ends_at < now,
                User.trial_expired_notified_at.is_(None),
            )
            .all()
        )

        pending = []
        for doctor in candidates:
            if doctor.subscription_status != SubscriptionStatus.EXPIRED:
                doctor.subscription_status = SubscriptionStatus.EXPIRED
                db.commit()
                create_audit_log(db, action="TRIAL_EXPIRED", user_id=doctor.id)
            pending.append((doctor.id, templates.trial_expired_email(doctor.email, doctor.first_name)))
        return pending

    def _trial_reminders(self, db: Session, now: datetime) -> List[Tuple[int, EmailMessage]]:
        candidates = (
            db.query(User)
            .filter(
                User.role == Role.DOCTOR,
                User.is_active.is_(True),
                User.subscription_status == SubscriptionStatus.TRIAL,
                User.trial_ends_at > now,
                User.trial_ends_at <= now + timedelta(days=self.trial_warning_days),
                User.trial_reminder_sent_at.is_(None),
            )
            .all()
        )

        pending = []
        for doctor in candidates:
            trial_ends_at = as_utc(doctor.trial_ends_at)
            days_left = max(1, math.ceil((trial_ends_at - now) / timedelta(days=1)))
            message = templates.trial_reminder_email(doctor.email, doctor.first_name, days_left, trial_ends_at)
            pending.append((doctor.id, message))
        return pending

    @staticmethod
    def _mark(db: Session, model, row_id: int, marker: str, now: datetime) -> None:
        """Record a successful send so the candidate is not picked again."""
        row = db.get(model, row_id)
        setattr(row, marker, now)
        db.commit()

    async def _send(self, message, report: TickReport, **ids) -> bool:
        """Send one message; a failure is recorded and the batch goes on."""
        try:
            await self.sender.send(message)
            return True
        except Exception as e:
            logger.error(f"Reminder {message.kind} to {message.to} failed: {str(e)}")
            report.failures.append({"kind": message.kind, "to": message.to, "error": str(e), **ids})
            return False

    async def run_forever(self) -> None:
        """Tick, then sleep for the interval, until cancelled."""
        logger.info(f"Reminder scheduler started (every {self.interval_seconds}s)")
        while True:
            try:
                await self.tick()
            except Exception:
                logger.exception("Reminder tick failed")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> asyncio.Task:
        """Start the loop as a task on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Reminder scheduler stopped")
