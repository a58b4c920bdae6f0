"""Assigning pending jobs to employees."""

import logging
from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.models import Job, User
from workflow.errors import WorkflowStateError, WorkflowValidationError
from workflow.history import append_history

logger = logging.getLogger(__name__)


def unassigned_jobs(db: Session, business_id: str | None) -> list[Job]:
    """Pending jobs of a business that nobody has been assigned to."""
    query = db.query(Job).filter(
        Job.status == "pending",
        or_(Job.employee_id.is_(None), Job.employee_id == ""),
    )
    if business_id is not None:
        query = query.filter(Job.business_id == business_id)
    return query.order_by(Job.scheduled_date).all()


def assign_job(db: Session, job: Job, employee: User | None, user) -> Job:
    """
    Assign a job to an employee and confirm it.

    No availability or double-booking check is made.
    """
    if employee is None or employee.role != "employee" or not employee.is_active:
        raise WorkflowValidationError("Employee not found or inactive", step="assign", field="employee_id")
    if employee.business_id != job.business_id:
        raise WorkflowValidationError(
            "Employee does not belong to the job's business", step="assign", field="employee_id"
        )
    if job.status in ("completed", "cancelled"):
        raise WorkflowStateError(f"Job {job.id} is already {job.status}", step="assign")

    job.employee_id = employee.id
    job.status = "confirmed"
    append_history(
        db, job, "job_assigned", f"Job assigned to {employee.name}", user,
        data={"employee_id": employee.id},
    )
    logger.info(f"Job {job.id} assigned to {employee.name}")
    return job
