"""Job CRUD and workflow routes."""

import logging
from fastapi import APIRouter, Body, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from database import get_db
from models.models import Customer, Job, User
from schemas.jobs import (
    AssignJobRequest, DepositDeferralRequest, DepositPaymentRequest, InstallationCompletion,
    InstallationDateWindow, InstallationScheduleRequest, InstallationStateResponse,
    JobCreate, JobFinancials, JobHistoryEntryResponse, JobResponse, JobUpdate, MeasurementCompletion,
)
from services.activity import log_activity
from services.auth import (
    business_scope, can_access_job, can_manage_job, get_current_user, require_role, scope_jobs_query,
)
from services.financials import compute_job_financials
from workflow.assignment import assign_job, unassigned_jobs
from workflow.errors import WorkflowStateError
from workflow.history import append_history, job_history
from workflow.installation import generate_invoice
from workflow.measurement import (
    complete_measurement, defer_deposit, pending_installation_scheduling, record_deposit,
)
from workflow.runner import finish_installation, installation_state, run_installation_step
from workflow.scheduling import (
    earliest_installation_date, schedule_installation, suggested_installation_date,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/jobs", tags=["jobs"])

# Reached only through the measurement and installation workflow
WORKFLOW_STATUSES = {
    "measurement": ("awaiting-deposit", "completed"),
    "installation": ("completed",),
}


def _get_job(db: Session, job_id: str, user: User) -> Job:
    job = db.get(Job, job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    if not can_access_job(user, job):
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return job


def _commit(db: Session, job: Job) -> JobResponse:
    db.commit()
    db.refresh(job)
    return JobResponse.model_validate(job)


# --- Listing & queues ---

@router.get("", response_model=list[JobResponse])
def list_jobs(
    status: str | None = None,
    job_type: str | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """List jobs visible to the caller, latest scheduled first."""
    query = scope_jobs_query(db.query(Job), user)
    if status:
        query = query.filter(Job.status == status)
    if job_type:
        query = query.filter(Job.job_type == job_type)
    jobs = query.order_by(Job.scheduled_date.desc()).all()
    return [JobResponse.model_validate(j) for j in jobs]


@router.get("/pending-scheduling", response_model=list[JobResponse])
def list_pending_scheduling(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Measurement jobs (paid or deferred deposit) still waiting for an installation date."""
    jobs = pending_installation_scheduling(db, business_scope(user))
    return [JobResponse.model_validate(j) for j in jobs]


@router.get("/unassigned", response_model=list[JobResponse])
def list_unassigned(
    db: Session = Depends(get_db),
    user: User = Depends(require_role("admin", "business")),
):
    jobs = unassigned_jobs(db, business_scope(user))
    return [JobResponse.model_validate(j) for j in jobs]


# --- CRUD ---

@router.post("", response_model=JobResponse, status_code=201)
def create_job(
    body: JobCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    customer = db.get(Customer, body.customer_id)
    if customer is None:
        raise HTTPException(status_code=400, detail="Customer not found")
    if user.role != "admin" and customer.business_id != user.business_id:
        raise HTTPException(status_code=403, detail="Insufficient permissions")

    job = Job(
        title=body.title,
        description=body.description,
        job_type=body.job_type,
        status="pending",
        customer_id=body.customer_id,
        business_id=customer.business_id if user.role == "admin" else user.business_id,
        employee_id=body.employee_id,
        scheduled_date=body.scheduled_date,
        scheduled_time=body.scheduled_time,
        quotation=body.quotation,
        checklist=[c.model_dump() for c in body.checklist],
        measurements=[m.model_dump() for m in body.measurements],
        selected_products=[p.model_dump() for p in body.selected_products],
        images=[],
        documents=[],
    )
    db.add(job)
    db.flush()
    append_history(db, job, "job_created", f"{body.job_type} job created", user)
    response = _commit(db, job)

    log_activity(db, user.id, "job_created", "job", job.id, request)
    logger.info(f"Job {job.id} created by {user.email}")
    return response


@router.get("/{job_id}", response_model=JobResponse)
def get_job(job_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return JobResponse.model_validate(_get_job(db, job_id, user))


def _check_status_change(job: Job, status: str) -> None:
    """Statuses the workflow sets are not reachable through a plain update."""
    owned = WORKFLOW_STATUSES.get(job.job_type, ())
    if status in owned and status != job.status:
        raise WorkflowStateError(
            f"Status '{status}' on a {job.job_type} job is set by the job workflow", step="update"
        )


@router.put("/{job_id}", response_model=JobResponse)
def update_job(
    job_id: str,
    body: JobUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Update job details.

    Workflow-owned statuses are rejected, and employee changes go through the
    same checks as the assign endpoint.
    """
    job = _get_job(db, job_id, user)
    updates = body.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    if "status" in updates:
        _check_status_change(job, updates["status"])

    if "employee_id" in updates:
        employee_id = updates.pop("employee_id")
        if employee_id != job.employee_id:
            if not can_manage_job(user, job):
                raise HTTPException(status_code=403, detail="Insufficient permissions")
            if employee_id:
                assign_job(db, job, db.get(User, employee_id), user)
            else:
                job.employee_id = None
                append_history(db, job, "job_unassigned", "Job unassigned", user)

    fields = sorted(updates)
    for field, value in updates.items():
        setattr(job, field, value)
    if fields:
        append_history(
            db, job, "job_updated", f"Updated {', '.join(fields)}", user,
            data={"fields": fields},
        )
    response = _commit(db, job)

    log_activity(db, user.id, "job_updated", "job", job.id, request, details={"fields": sorted(body.model_fields_set)})
    return response


@router.delete("/{job_id}")
def delete_job(
    job_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    job = _get_job(db, job_id, user)
    if not can_manage_job(user, job):
        raise HTTPException(status_code=403, detail="Insufficient permissions")

    db.delete(job)
    db.commit()

    log_activity(db, user.id, "job_deleted", "job", job_id, request)
    return {"message": "Job deleted successfully"}


@router.get("/{job_id}/history", response_model=list[JobHistoryEntryResponse])
def get_job_history(job_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    job = _get_job(db, job_id, user)
    return [JobHistoryEntryResponse.model_validate(e) for e in job_history(db, job.id)]


@router.get("/{job_id}/financials", response_model=JobFinancials)
def get_job_financials(job_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return compute_job_financials(_get_job(db, job_id, user))


# --- Measurement & deposit ---

@router.post("/{job_id}/measurements", response_model=JobResponse)
def submit_measurements(
    job_id: str,
    body: MeasurementCompletion,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    job = _get_job(db, job_id, user)
    complete_measurement(db, job, body.measurements, user, selected_products=body.selected_products)
    response = _commit(db, job)

    log_activity(db, user.id, "measurements_completed", "job", job.id, request)
    return response


@router.post("/{job_id}/deposit", response_model=JobResponse)
def pay_deposit(
    job_id: str,
    body: DepositPaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    job = _get_job(db, job_id, user)
    record_deposit(db, job, body.payment_method, user, custom_amount=body.custom_amount)
    response = _commit(db, job)

    log_activity(
        db, user.id, "deposit_paid", "job", job.id, request,
        details={"deposit": response.deposit, "method": body.payment_method},
    )
    return response


@router.post("/{job_id}/deposit/defer", response_model=JobResponse)
def skip_deposit(
    job_id: str,
    body: DepositDeferralRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    job = _get_job(db, job_id, user)
    defer_deposit(db, job, body.reason, user)
    response = _commit(db, job)

    log_activity(db, user.id, "deposit_deferred", "job", job.id, request, details={"reason": body.reason})
    return response


# --- Installation scheduling ---

@router.get("/{job_id}/installation-date", response_model=InstallationDateWindow)
def get_installation_date_window(job_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Earliest allowed and suggested installation dates for a measurement job."""
    job = _get_job(db, job_id, user)
    return InstallationDateWindow(
        measurement_date=job.scheduled_date,
        earliest_date=earliest_installation_date(job.scheduled_date),
        suggested_date=suggested_installation_date(job.scheduled_date),
    )


@router.post("/{job_id}/schedule-installation", response_model=JobResponse, status_code=201)
def create_installation(
    job_id: str,
    body: InstallationScheduleRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    job = _get_job(db, job_id, user)
    installation = schedule_installation(db, job, body.installation_date, body.installation_time, user)
    response = _commit(db, installation)

    log_activity(
        db, user.id, "installation_scheduled", "job", installation.id, request,
        details={"parent_job_id": job_id, "scheduled_date": str(response.scheduled_date)},
    )
    return response


# --- Installation workflow ---

@router.get("/{job_id}/installation", response_model=InstallationStateResponse)
def get_installation_state(job_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    job = _get_job(db, job_id, user)
    state = installation_state(job)
    return InstallationStateResponse(job_id=job.id, current_step=state.current_step.value, data=state.data)


@router.get("/{job_id}/installation/invoice")
def preview_invoice(job_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Invoice as it would be generated now, without advancing the workflow."""
    job = _get_job(db, job_id, user)
    state = installation_state(job)
    return generate_invoice(
        job,
        payment_method=state.data.get("payment_method"),
        paid_in_full=bool(state.data.get("balance_paid")),
    )


@router.post("/{job_id}/installation/finish", response_model=InstallationCompletion)
def finish_installation_job(
    job_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    job = _get_job(db, job_id, user)
    result = finish_installation(db, job, user)
    response = _commit(db, job)

    log_activity(db, user.id, "installation_completed", "job", job.id, request)
    return InstallationCompletion(job=response, installation=result)


@router.post("/{job_id}/installation/{step}", response_model=InstallationStateResponse)
def submit_installation_step(
    job_id: str,
    step: str,
    request: Request,
    payload: dict | None = Body(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Run one installation step; the next step is returned with the accumulated data."""
    job = _get_job(db, job_id, user)
    state = run_installation_step(db, job, step, payload or {}, user)
    db.commit()

    log_activity(
        db, user.id, f"installation_{step}_completed", "job", job.id, request,
        details={"next_step": state.current_step.value},
    )
    return InstallationStateResponse(job_id=job_id, current_step=state.current_step.value, data=state.data)


# --- Assignment ---

@router.post("/{job_id}/assign", response_model=JobResponse)
def assign(
    job_id: str,
    body: AssignJobRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_role("admin", "business")),
):
    job = _get_job(db, job_id, user)
    if not can_manage_job(user, job):
        raise HTTPException(status_code=403, detail="Insufficient permissions")

    assign_job(db, job, db.get(User, body.employee_id), user)
    response = _commit(db, job)

    log_activity(db, user.id, "job_assigned", "job", job.id, request, details={"employee_id": body.employee_id})
    return response
