"""Measurement completion and the deposit decision that follows it."""

import logging
import time
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session, aliased

from models.models import Job
from schemas.jobs import JobMeasurement, SelectedProduct
from services.financials import compute_job_financials
from workflow.errors import WorkflowStateError, WorkflowValidationError
from workflow.history import append_history

logger = logging.getLogger(__name__)

DEPOSIT_METHODS = ("card", "cash", "bank-transfer")
CLOSED_STATUSES = ("completed", "cancelled")


def _require_measurement_job(job: Job, step: str) -> None:
    if job.job_type != "measurement":
        raise WorkflowStateError(f"Job {job.id} is not a measurement job", step=step)
    if job.status in CLOSED_STATUSES:
        raise WorkflowStateError(f"Job {job.id} is already {job.status}", step=step)


def _require_measurements(job: Job, step: str) -> None:
    if not job.measurements:
        raise WorkflowValidationError(
            "Please add at least one measurement", step=step, field="measurements"
        )


def _deposit_reference() -> str:
    return f"DEP-{str(int(time.time() * 1000))[-8:]}"


def complete_measurement(
    db: Session,
    job: Job,
    measurements: list[JobMeasurement],
    user,
    selected_products: list[SelectedProduct] | None = None,
) -> Job:
    """Store the window measurements (and optionally products) captured on site."""
    _require_measurement_job(job, "measurements")
    if not measurements:
        raise WorkflowValidationError(
            "Please add at least one measurement", step="measurements", field="measurements"
        )

    job.measurements = [m.model_dump() for m in measurements]
    if selected_products is not None:
        job.selected_products = [p.model_dump() for p in selected_products]
    if job.status in ("pending", "confirmed"):
        job.status = "in-progress"
        job.start_time = job.start_time or datetime.utcnow()

    append_history(
        db, job, "measurements_completed",
        f"{len(measurements)} window measurement(s) recorded",
        user,
        data={"windows": [m.window_id for m in measurements]},
    )
    logger.info(f"Job {job.id}: {len(measurements)} measurements recorded")
    return job


def record_deposit(
    db: Session,
    job: Job,
    method: str,
    user,
    custom_amount: float | None = None,
) -> Job:
    """
    Record the upfront deposit and unlock installation scheduling.

    The amount is the recommended share of the subtotal unless a custom
    amount is given, which must be positive and no larger than the subtotal.
    """
    _require_measurement_job(job, "deposit")
    _require_measurements(job, "deposit")

    if job.deposit_paid:
        raise WorkflowStateError(f"Deposit for job {job.id} has already been recorded", step="deposit")
    if method not in DEPOSIT_METHODS:
        raise WorkflowValidationError(
            f"Unsupported deposit payment method '{method}'", step="deposit", field="payment_method"
        )

    financials = compute_job_financials(job)
    if financials.subtotal <= 0:
        raise WorkflowValidationError(
            "Add products or a quotation before taking a deposit", step="deposit", field="subtotal"
        )
    if custom_amount is not None:
        if custom_amount <= 0:
            raise WorkflowValidationError(
                "Deposit amount must be greater than zero", step="deposit", field="custom_amount"
            )
        if custom_amount > financials.subtotal:
            raise WorkflowValidationError(
                f"Deposit amount cannot exceed the job total of ${financials.subtotal:.2f}",
                step="deposit", field="custom_amount",
            )
        amount = round(custom_amount, 2)
    else:
        amount = financials.recommended_deposit

    job.deposit = amount
    job.deposit_paid = True
    job.deposit_paid_at = datetime.utcnow()
    job.deposit_payment_method = method
    job.deposit_customer_reference = _deposit_reference()
    job.deposit_payment_skipped = False
    job.deposit_skip_reason = None
    if job.status == "awaiting-deposit":
        job.status = "in-progress"

    append_history(
        db, job, "deposit_paid",
        f"Deposit of ${amount:.2f} received by {method}",
        user,
        data={
            "deposit": amount,
            "payment_method": method,
            "customer_reference": job.deposit_customer_reference,
            "subtotal": financials.subtotal,
        },
    )
    logger.info(f"Job {job.id}: deposit ${amount:.2f} recorded ({method})")
    return job


def defer_deposit(db: Session, job: Job, reason: str, user) -> Job:
    """Skip the deposit for now; the job waits in the scheduling queue."""
    _require_measurement_job(job, "deposit")
    if job.deposit_paid:
        raise WorkflowStateError(f"Deposit for job {job.id} has already been recorded", step="deposit")

    reason = (reason or "").strip()
    if not reason:
        raise WorkflowValidationError(
            "Please provide a reason for deferring payment", step="deposit", field="reason"
        )

    job.deposit_payment_skipped = True
    job.deposit_skip_reason = reason
    job.needs_installation_scheduling = True
    job.status = "awaiting-deposit"

    append_history(db, job, "deposit_deferred", f"Deposit deferred: {reason}", user, data={"reason": reason})
    logger.info(f"Job {job.id}: deposit deferred ({reason})")
    return job


def pending_installation_scheduling(db: Session, business_id: str | None = None) -> list[Job]:
    """
    Measurement jobs waiting for an installation date.

    Both paid and deferred jobs are listed; a job leaves the queue once an
    installation job references it or it is closed.
    """
    child = aliased(Job)
    has_installation = db.query(child.id).filter(
        child.parent_job_id == Job.id,
        child.job_type == "installation",
    ).exists()

    query = db.query(Job).filter(
        Job.job_type == "measurement",
        Job.status.notin_(CLOSED_STATUSES),
        or_(Job.needs_installation_scheduling.is_(True), Job.deposit_paid.is_(True)),
        ~has_installation,
    )
    if business_id is not None:
        query = query.filter(Job.business_id == business_id)
    return query.order_by(Job.scheduled_date).all()
