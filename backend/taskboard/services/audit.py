import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskboard.models import AuditLog

logger = logging.getLogger(__name__)


def log_event(
    db: Session,
    action: str,
    status: str,
    message: str = "",
    user_id: str | None = None,
    details: dict | None = None,
) -> None:
    entry = AuditLog(
        user_id=user_id,
        action=action,
        status=status,
        message=message,
        details=details or {},
    )
    db.add(entry)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to write audit event %s/%s", action, status)
