"""
Sending helper used by services after a state change has been committed.
"""
import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from ..core.audit_service import create_audit_log
from .sender import EmailMessage, NotificationError, NotificationSender

# Set up logging
logger = logging.getLogger(__name__)


async def deliver(
    db: Session,
    sender: NotificationSender,
    message: EmailMessage,
    user_id: Optional[int] = None,
    request: Optional[Request] = None,
) -> bool:
    """
    Send ``message`` and report whether it went out.

    A failed send is logged and written to the audit log. It never undoes the
    change that triggered the email, so callers commit before delivering.
    """
    try:
        await sender.send(message)
        return True
    except NotificationError as e:
        logger.error(f"Failed to send {message.kind} email to {message.to}: {str(e)}")
        create_audit_log(
            db,
            action="EMAIL_SEND_FAILED",
            user_id=user_id,
            request=request,
            details={"kind": message.kind, "to": message.to, "error": str(e)},
        )
        return False
