"""Append-only job history."""

import logging
from sqlalchemy import func
from sqlalchemy.orm import Session

from models.models import Job, JobHistoryEntry

logger = logging.getLogger(__name__)


def append_history(
    db: Session,
    job: Job,
    action: str,
    description: str,
    user=None,
    data: dict | None = None,
) -> JobHistoryEntry:
    """
    Insert the next history entry for a job.

    Entries are insert-only rows numbered per job, so concurrent writers never
    rewrite each other's entries; a sequence collision fails on the unique
    constraint instead of silently dropping an entry.
    """
    last = db.query(func.max(JobHistoryEntry.sequence)).filter(
        JobHistoryEntry.job_id == job.id
    ).scalar()

    entry = JobHistoryEntry(
        job=job,
        sequence=(last or 0) + 1,
        action=action,
        description=description,
        user_id=getattr(user, "id", "") or "",
        user_name=getattr(user, "name", "") or "",
        data=data,
    )
    db.add(entry)
    db.flush()

    logger.info(f"History {job.id}#{entry.sequence}: {action}")
    return entry


def job_history(db: Session, job_id: str) -> list[JobHistoryEntry]:
    return db.query(JobHistoryEntry).filter(
        JobHistoryEntry.job_id == job_id
    ).order_by(JobHistoryEntry.sequence).all()
