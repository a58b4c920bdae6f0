"""Activity log written by every mutating endpoint."""

import logging
from fastapi import Request
from sqlalchemy.orm import Session

from models.models import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    user_id: str | None,
    action: str,
    target_type: str,
    target_id: str,
    request: Request | None = None,
    details: dict | None = None,
) -> None:
    """
    Record one activity row.

    Fire-and-forget: a failure is logged and rolled back, never raised to the caller.
    Call it after the main change has been committed.
    """
    try:
        entry = ActivityLog(
            user_id=user_id,
            action=action,
            target_type=target_type,
            target_id=str(target_id),
            details=details,
            ip_address=request.client.host if request is not None and request.client else None,
            user_agent=request.headers.get("user-agent") if request is not None else None,
        )
        db.add(entry)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to log activity '{action}' on {target_type} {target_id}: {str(e)}")
