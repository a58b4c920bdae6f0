"""Installation scheduling: turn a measured job into an installation job."""

import copy
import logging
from datetime import date, datetime, timedelta

from dateutil import parser as date_parser
from sqlalchemy.orm import Session

from config import settings
from models.models import Job, new_job_id
from workflow.errors import WorkflowStateError, WorkflowValidationError
from workflow.history import append_history

logger = logging.getLogger(__name__)

DEFAULT_INSTALLATION_CHECKLIST = [
    {"id": "1", "text": "Confirm order with customer", "completed": False},
    {"id": "2", "text": "Take installation photos", "completed": False},
    {"id": "3", "text": "Get customer signature", "completed": False},
    {"id": "4", "text": "Collect final payment", "completed": False},
    {"id": "5", "text": "Send invoice", "completed": False},
]


def earliest_installation_date(measurement_date: date | None, today: date | None = None) -> date:
    today = today or date.today()
    if measurement_date is None:
        return today
    return max(today, measurement_date)


def suggested_installation_date(measurement_date: date | None, today: date | None = None) -> date:
    """Measurement date plus the configured lead time, never before the earliest allowed date."""
    earliest = earliest_installation_date(measurement_date, today)
    if measurement_date is None:
        return earliest
    return max(earliest, measurement_date + timedelta(days=settings.INSTALLATION_LEAD_DAYS))


def validate_installation_date(
    candidate: date | None,
    measurement_date: date | None,
    today: date | None = None,
) -> date:
    today = today or date.today()
    if candidate is None:
        raise WorkflowValidationError(
            "Please select an installation date", step="schedule", field="installation_date"
        )
    if candidate < today:
        raise WorkflowValidationError(
            "Installation date cannot be in the past", step="schedule", field="installation_date"
        )
    if measurement_date is not None and candidate < measurement_date:
        raise WorkflowValidationError(
            "Installation date cannot be before the measurement date",
            step="schedule", field="installation_date",
        )
    return candidate


def _normalize_time(value: str | None) -> str:
    """Parse '9am', '14:30', '09:00' and similar into HH:MM."""
    value = (value or "").strip() or settings.DEFAULT_INSTALLATION_TIME
    try:
        parsed = date_parser.parse(value, default=datetime(2000, 1, 1))
    except (ValueError, OverflowError):
        raise WorkflowValidationError(
            f"Invalid installation time '{value}'", step="schedule", field="installation_time"
        ) from None
    return parsed.strftime("%H:%M")


def schedule_installation(
    db: Session,
    job: Job,
    installation_date: date | None,
    installation_time: str | None,
    user,
    today: date | None = None,
) -> Job:
    """
    Create the installation job for a measurement job and close the measurement.

    The installation job carries deep copies of the measurement data so the two
    records never share mutable content.
    """
    if job.job_type != "measurement":
        raise WorkflowStateError(f"Job {job.id} is not a measurement job", step="schedule")
    if job.status == "cancelled":
        raise WorkflowStateError(f"Job {job.id} is cancelled", step="schedule")
    if not (job.deposit_paid or job.deposit_payment_skipped):
        raise WorkflowStateError(
            "Record or defer the deposit before scheduling installation", step="schedule"
        )

    existing = db.query(Job).filter(
        Job.parent_job_id == job.id, Job.job_type == "installation"
    ).first()
    if existing:
        raise WorkflowStateError(
            f"Installation job {existing.id} already exists for job {job.id}", step="schedule"
        )

    scheduled_date = validate_installation_date(installation_date, job.scheduled_date, today)
    scheduled_time = _normalize_time(installation_time)

    installation = Job(
        id=new_job_id(),
        title=f"Installation - {job.title}",
        description=f"Installation job created from measurement job #{job.id}.",
        job_type="installation",
        status="pending",
        customer_id=job.customer_id,
        business_id=job.business_id,
        employee_id=None,
        parent_job_id=job.id,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        measurements=copy.deepcopy(job.measurements or []),
        selected_products=copy.deepcopy(job.selected_products or []),
        quotation=job.quotation,
        deposit=job.deposit,
        deposit_paid=bool(job.deposit_paid),
        images=copy.deepcopy(job.images or []),
        documents=copy.deepcopy(job.documents or []),
        checklist=copy.deepcopy(DEFAULT_INSTALLATION_CHECKLIST),
    )
    db.add(installation)
    db.flush()

    append_history(
        db, installation, "installation_job_created",
        f"Created from measurement job #{job.id}. Scheduled for {scheduled_date.isoformat()} at {scheduled_time}.",
        user,
        data={"parent_job_id": job.id, "scheduled_date": scheduled_date.isoformat()},
    )

    job.needs_installation_scheduling = False
    job.status = "completed"
    job.completed_date = datetime.utcnow()
    append_history(
        db, job, "installation_scheduled",
        f"Installation job #{installation.id} scheduled for {scheduled_date.isoformat()}",
        user,
        data={"installation_job_id": installation.id, "scheduled_date": scheduled_date.isoformat()},
    )

    logger.info(f"Job {job.id}: installation {installation.id} scheduled for {scheduled_date}")
    return installation
