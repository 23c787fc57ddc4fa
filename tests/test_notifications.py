"""
Tests for email delivery through the Resend API and the email builders.
"""
import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from pacigest.core.audit_models import AuditLog
from pacigest.notifications import templates
from pacigest.notifications.dispatch import deliver
from pacigest.notifications.sender import NotificationError, ResendEmailSender


def make_sender(handler):
    return ResendEmailSender(
        api_key="re_test",
        sender="PaciGest Plus <no-reply@example.com>",
        transport=httpx.MockTransport(handler),
    )


def test_resend_sender_posts_message():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email_123"})

    message = templates.password_changed_email("ana@example.com", "Ana")
    asyncio.run(make_sender(handler).send(message))

    assert seen["auth"] == "Bearer re_test"
    assert seen["body"]["to"] == ["ana@example.com"]
    assert seen["body"]["subject"] == message.subject
    assert seen["body"]["tags"] == [{"name": "kind", "value": "password_changed"}]


def test_resend_sender_raises_on_provider_error():
    sender = make_sender(lambda request: httpx.Response(422, json={"message": "invalid from"}))
    with pytest.raises(NotificationError):
        asyncio.run(sender.send(templates.trial_expired_email("ana@example.com", "Ana")))


def test_resend_sender_raises_on_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NotificationError):
        asyncio.run(make_sender(handler).send(templates.trial_expired_email("ana@example.com", "Ana")))


def test_deliver_audits_failures(db, sender):
    sender.fail = True
    message = templates.verification_code_email("ana@example.com", "Ana", "123456", 15)

    assert asyncio.run(deliver(db, sender, message)) is False
    entry = db.query(AuditLog).filter(AuditLog.action == "EMAIL_SEND_FAILED").one()
    assert entry.details["kind"] == "verification_code"


def test_templates_escape_names():
    message = templates.staff_invitation_email("x@example.com", "<b>Eve</b>", "Dr House", "tmp-pass")
    assert "<b>Eve</b>" not in message.html
    assert "tmp-pass" in message.html


def test_reminder_kinds():
    when = datetime(2025, 1, 14, 15, 30, tzinfo=timezone.utc)
    day = templates.appointment_reminder_email("a@example.com", "Ana", "Maria Perez", when, "APT-1", "24h")
    soon = templates.appointment_reminder_email("a@example.com", "Ana", "Maria Perez", when, "APT-1", "2h")
    assert day.kind == "appointment_reminder_24h"
    assert soon.kind == "appointment_reminder_2h"
    assert "APT-1" in day.subject
