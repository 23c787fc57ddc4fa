"""
Human-readable document numbers such as ``APT-20250114-0007``.
"""
from datetime import datetime
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .clock import utcnow

# Set up logging
logger = logging.getLogger(__name__)

NUMBER_ATTEMPTS = 5


def next_document_number(db: Session, model, prefix: str, now: Optional[datetime] = None) -> str:
    """
    Build ``PREFIX-YYYYMMDD-NNNN`` where NNNN is one more than the row count.

    Args:
        db: Database session
        model: Mapped class the number is for
        prefix: Document prefix (PAC, APT, RX)
        now: Reference time (defaults to the current time)

    Returns:
        str: The next document number
    """
    date = (now or utcnow()).strftime("%Y%m%d")
    count = db.query(model).count()
    return f"{prefix}-{date}-{count + 1:04d}"


def save_numbered(db: Session, instance, field: str, prefix: str, attempts: int = NUMBER_ATTEMPTS):
    """
    Give ``instance`` the next document number and commit it.

    Two requests can compute the same number; the unique index rejects the later
    commit, which is rolled back and retried with a fresh count.

    Raises:
        IntegrityError: If every attempt collides, or the row breaks another constraint
    """
    model = type(instance)
    for attempt in range(1, attempts + 1):
        number = next_document_number(db, model, prefix)
        setattr(instance, field, number)
        db.add(instance)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if attempt == attempts:
                raise
            logger.warning(f"{prefix} number {number} was taken, retrying ({attempt}/{attempts})")
            continue
        db.refresh(instance)
        return instance
