"""Runs installation workflow steps against stored jobs."""

import logging
from datetime import datetime

from dateutil import parser as date_parser
from sqlalchemy.orm import Session

from models.models import Job
from workflow.errors import WorkflowError, WorkflowStateError
from workflow.history import append_history
from workflow.installation import InstallationState, InstallationStep, advance, finish, parse_step

logger = logging.getLogger(__name__)

# Checklist item ticked by each step (matches the default installation checklist)
STEP_CHECKLIST = {
    InstallationStep.CONFIRM_ORDER: "1",
    InstallationStep.PHOTOS: "2",
    InstallationStep.SIGNATURE: "3",
    InstallationStep.PAYMENT: "4",
    InstallationStep.INVOICE: "5",
}

STEP_DESCRIPTIONS = {
    InstallationStep.CONFIRM_ORDER: "Order confirmed with customer",
    InstallationStep.PHOTOS: "Installation photos captured",
    InstallationStep.SIGNATURE: "Customer signature obtained",
    InstallationStep.PAYMENT: "Final payment collected",
    InstallationStep.INVOICE: "Invoice sent",
}

# Kept out of history entries; they stay available on the workflow state
BULKY_KEYS = {"photos", "signature", "order_summary", "invoice"}


def _require_installation_job(job: Job, step: str) -> None:
    if job.job_type != "installation":
        raise WorkflowStateError(f"Job {job.id} is not an installation job", step=step)
    if job.status in ("completed", "cancelled"):
        raise WorkflowStateError(f"Job {job.id} is already {job.status}", step=step)


def _tick(checklist: list | None, item_id: str) -> list:
    return [
        {**item, "completed": True} if item.get("id") == item_id else dict(item)
        for item in checklist or []
    ]


def _timestamp(value: str | None) -> datetime | None:
    return date_parser.isoparse(value) if value else None


def installation_state(job: Job) -> InstallationState:
    return InstallationState.from_job(job)


def run_installation_step(db: Session, job: Job, step: str, payload, user) -> InstallationState:
    """
    Apply one step to the job's stored workflow state and persist the result.

    A rejected step raises and leaves the stored state untouched.
    """
    _require_installation_job(job, step)
    state = InstallationState.from_job(job)
    source = db.get(Job, job.parent_job_id) if job.parent_job_id else None

    try:
        new_state = advance(state, step, job, payload, source=source)
    except WorkflowError as e:
        logger.warning(f"Job {job.id}: step '{step}' rejected: {e.message}")
        raise

    completed = parse_step(step)
    job.installation_state = new_state.model_dump(mode="json")
    job.checklist = _tick(job.checklist, STEP_CHECKLIST[completed])
    if completed == InstallationStep.CONFIRM_ORDER:
        job.status = "in-progress"
        job.start_time = job.start_time or datetime.utcnow()

    increment = {
        key: value for key, value in new_state.data.items()
        if key not in BULKY_KEYS and state.data.get(key) != value
    }
    append_history(
        db, job, f"{completed.value}_completed", STEP_DESCRIPTIONS[completed], user,
        data={**increment, "next_step": new_state.current_step.value},
    )
    logger.info(f"Job {job.id}: {completed.value} -> {new_state.current_step.value}")
    return new_state


def finish_installation(db: Session, job: Job, user) -> dict:
    """Close the installation job and copy the workflow results onto it."""
    _require_installation_job(job, InstallationStep.COMPLETE.value)
    state = InstallationState.from_job(job)
    result = finish(state)
    data = state.data

    job.status = "completed"
    job.completed_date = _timestamp(result["completed_at"])
    job.installation_images = list(data.get("photos", []))
    job.signature = data.get("signature")
    job.payment_reference = data.get("payment_reference")
    job.final_payment_paid = bool(data.get("balance_paid"))
    job.final_payment_date = _timestamp(data.get("paid_at"))
    job.invoice_sent = bool(data.get("invoice_sent"))
    job.invoice_sent_at = _timestamp(data.get("invoice_sent_at"))
    if data.get("invoice"):
        job.invoice = data["invoice"]["total"]

    append_history(
        db, job, "installation_completed", "Installation job completed", user,
        data={"completed_at": result["completed_at"], "invoice_number": data.get("invoice_number")},
    )
    logger.info(f"Job {job.id}: installation completed")
    return result
