"""
Builders for every transactional email the application sends.

Bodies are short HTML snippets; the values used to render them are kept in
``EmailMessage.context`` so callers and tests can inspect what was sent.
"""
from datetime import datetime
from html import escape
from typing import Optional

from ..config import settings
from .sender import EmailMessage


def _format_when(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M UTC")


def _wrap(title: str, body: str) -> str:
    return (
        f"<div style=\"font-family: Arial, sans-serif; max-width: 600px;\">"
        f"<h2>{escape(title)}</h2>{body}"
        f"<p style=\"color: #888; font-size: 12px;\">PaciGest Plus</p></div>"
    )


def verification_code_email(to: str, name: str, code: str, ttl_minutes: int) -> EmailMessage:
    html = _wrap(
        "Verify your email",
        f"<p>Hello {escape(name)},</p>"
        f"<p>Your verification code is <strong style=\"font-size: 24px;\">{code}</strong>.</p>"
        f"<p>The code expires in {ttl_minutes} minutes.</p>",
    )
    return EmailMessage(
        to=to,
        subject="Your PaciGest Plus verification code",
        html=html,
        kind="verification_code",
        context={"name": name, "code": code, "ttl_minutes": ttl_minutes},
    )


def welcome_email(to: str, name: str, trial_ends_at: Optional[datetime]) -> EmailMessage:
    trial_line = ""
    if trial_ends_at:
        trial_line = f"<p>Your free trial runs until {_format_when(trial_ends_at)}.</p>"
    html = _wrap(
        "Welcome to PaciGest Plus",
        f"<p>Hello {escape(name)}, your account is verified.</p>{trial_line}"
        f"<p><a href=\"{settings.frontend_url}/dashboard\">Open your dashboard</a></p>",
    )
    return EmailMessage(
        to=to,
        subject="Welcome to PaciGest Plus",
        html=html,
        kind="welcome",
        context={"name": name, "trial_ends_at": trial_ends_at},
    )


def password_reset_email(to: str, name: str, token: str, ttl_minutes: int) -> EmailMessage:
    link = f"{settings.frontend_url}/reset-password?token={token}"
    html = _wrap(
        "Reset your password",
        f"<p>Hello {escape(name)},</p>"
        f"<p><a href=\"{link}\">Choose a new password</a>. The link expires in {ttl_minutes} minutes.</p>"
        f"<p>If you did not request this, ignore this email.</p>",
    )
    return EmailMessage(
        to=to,
        subject="Reset your PaciGest Plus password",
        html=html,
        kind="password_reset",
        context={"name": name, "token": token, "link": link, "ttl_minutes": ttl_minutes},
    )


def password_changed_email(to: str, name: str) -> EmailMessage:
    html = _wrap(
        "Password changed",
        f"<p>Hello {escape(name)}, your password was just changed.</p>"
        f"<p>If this was not you, reset your password immediately.</p>",
    )
    return EmailMessage(
        to=to,
        subject="Your PaciGest Plus password was changed",
        html=html,
        kind="password_changed",
        context={"name": name},
    )


def staff_invitation_email(to: str, name: str, doctor_name: str, temporary_password: str) -> EmailMessage:
    html = _wrap(
        "You have been invited",
        f"<p>Hello {escape(name)},</p>"
        f"<p>Dr. {escape(doctor_name)} created a PaciGest Plus account for you.</p>"
        f"<p>Sign in with this temporary password and change it: <code>{escape(temporary_password)}</code></p>"
        f"<p><a href=\"{settings.frontend_url}/login\">Sign in</a></p>",
    )
    return EmailMessage(
        to=to,
        subject="Your PaciGest Plus staff account",
        html=html,
        kind="staff_invitation",
        context={"name": name, "doctor_name": doctor_name, "temporary_password": temporary_password},
    )


def appointment_confirmation_email(
    to: str, patient_name: str, doctor_name: str, scheduled_at: datetime, appointment_number: str
) -> EmailMessage:
    html = _wrap(
        "Appointment scheduled",
        f"<p>Hello {escape(patient_name)},</p>"
        f"<p>Your appointment {appointment_number} with Dr. {escape(doctor_name)} "
        f"is scheduled for {_format_when(scheduled_at)}.</p>",
    )
    return EmailMessage(
        to=to,
        subject=f"Appointment {appointment_number} scheduled",
        html=html,
        kind="appointment_confirmation",
        context={
            "patient_name": patient_name,
            "doctor_name": doctor_name,
            "scheduled_at": scheduled_at,
            "appointment_number": appointment_number,
        },
    )


def appointment_cancellation_email(
    to: str, patient_name: str, doctor_name: str, scheduled_at: datetime, appointment_number: str, reason: str
) -> EmailMessage:
    html = _wrap(
        "Appointment cancelled",
        f"<p>Hello {escape(patient_name)},</p>"
        f"<p>Your appointment {appointment_number} with Dr. {escape(doctor_name)} "
        f"on {_format_when(scheduled_at)} was cancelled.</p>"
        f"<p>Reason: {escape(reason)}</p>",
    )
    return EmailMessage(
        to=to,
        subject=f"Appointment {appointment_number} cancelled",
        html=html,
        kind="appointment_cancellation",
        context={
            "patient_name": patient_name,
            "doctor_name": doctor_name,
            "scheduled_at": scheduled_at,
            "appointment_number": appointment_number,
            "reason": reason,
        },
    )


def appointment_reminder_email(
    to: str, patient_name: str, doctor_name: str, scheduled_at: datetime, appointment_number: str, lead: str
) -> EmailMessage:
    """Reminder sent ``lead`` ahead of the appointment ("24h" or "2h")."""
    when = "tomorrow" if lead == "24h" else "in two hours"
    html = _wrap(
        "Appointment reminder",
        f"<p>Hello {escape(patient_name)},</p>"
        f"<p>This is a reminder of your appointment with Dr. {escape(doctor_name)} "
        f"{when}, at {_format_when(scheduled_at)}.</p>",
    )
    return EmailMessage(
        to=to,
        subject=f"Reminder: appointment {appointment_number}",
        html=html,
        kind=f"appointment_reminder_{lead}",
        context={
            "patient_name": patient_name,
            "doctor_name": doctor_name,
            "scheduled_at": scheduled_at,
            "appointment_number": appointment_number,
            "lead": lead,
        },
    )


def trial_reminder_email(to: str, name: str, days_left: int, trial_ends_at: datetime) -> EmailMessage:
    html = _wrap(
        "Your trial is ending",
        f"<p>Hello {escape(name)},</p>"
        f"<p>Your free trial ends in {days_left} day(s), on {_format_when(trial_ends_at)}.</p>"
        f"<p><a href=\"{settings.frontend_url}/subscription\">Choose a plan</a> to keep access.</p>",
    )
    return EmailMessage(
        to=to,
        subject=f"Your PaciGest Plus trial ends in {days_left} day(s)",
        html=html,
        kind="trial_reminder",
        context={"name": name, "days_left": days_left, "trial_ends_at": trial_ends_at},
    )


def trial_expired_email(to: str, name: str) -> EmailMessage:
    html = _wrap(
        "Your trial has ended",
        f"<p>Hello {escape(name)},</p>"
        f"<p>Your free trial has ended. Clinical features are locked until you subscribe.</p>"
        f"<p><a href=\"{settings.frontend_url}/subscription\">Choose a plan</a></p>",
    )
    return EmailMessage(
        to=to,
        subject="Your PaciGest Plus trial has ended",
        html=html,
        kind="trial_expired",
        context={"name": name},
    )


def subscription_activated_email(to: str, name: str, plan: str, ends_at: datetime) -> EmailMessage:
    html = _wrap(
        "Subscription activated",
        f"<p>Hello {escape(name)},</p>"
        f"<p>Your {escape(plan)} subscription is active until {_format_when(ends_at)}.</p>",
    )
    return EmailMessage(
        to=to,
        subject="Your PaciGest Plus subscription is active",
        html=html,
        kind="subscription_activated",
        context={"name": name, "plan": plan, "ends_at": ends_at},
    )
