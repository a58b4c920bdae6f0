"""Installation workflow state machine.

Steps run strictly in order:

    confirm_order -> photos -> signature -> payment -> invoice -> complete

The state is an immutable value. Each transition checks its gate, merges the
step's data increment into a copy of the accumulated data and returns a new
state positioned exactly one step further. Nothing here touches the database;
see ``workflow.runner`` for persistence.
"""

from __future__ import annotations

import copy
import logging
import time
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from schemas.jobs import (
    OrderConfirmationInput, PhotosInput, SignatureInput, PaymentInput, InvoiceInput,
)
from services.financials import compute_job_financials, cash_change
from workflow.errors import WorkflowStateError, WorkflowValidationError

logger = logging.getLogger(__name__)


class InstallationStep(str, Enum):
    CONFIRM_ORDER = "confirm_order"
    PHOTOS = "photos"
    SIGNATURE = "signature"
    PAYMENT = "payment"
    INVOICE = "invoice"
    COMPLETE = "complete"


STEP_ORDER = list(InstallationStep)


class InstallationState(BaseModel):
    """Current step plus everything the completed steps produced."""

    current_step: InstallationStep = InstallationStep.CONFIRM_ORDER
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_job(cls, job) -> "InstallationState":
        if not job.installation_state:
            return cls()
        return cls.model_validate(job.installation_state)

    @property
    def is_complete(self) -> bool:
        return self.current_step == InstallationStep.COMPLETE


def _now() -> str:
    return datetime.utcnow().isoformat()


def _millis() -> int:
    return int(time.time() * 1000)


def _expect(state: InstallationState, step: InstallationStep) -> None:
    if state.current_step != step:
        raise WorkflowStateError(
            f"Cannot run '{step.value}' while the workflow is at '{state.current_step.value}'",
            step=step.value,
        )


def _advance(state: InstallationState, increment: dict) -> InstallationState:
    position = STEP_ORDER.index(state.current_step)
    return InstallationState(
        current_step=STEP_ORDER[position + 1],
        data={**state.data, **increment},
    )


# --- Transitions ---

def confirm_order(
    state: InstallationState,
    job,
    payload: OrderConfirmationInput,
    source=None,
) -> InstallationState:
    """
    Operator confirms the order with the customer on site.

    The order summary is taken from the originating measurement job when one
    is given, otherwise from the installation job itself.
    """
    step = InstallationStep.CONFIRM_ORDER
    _expect(state, step)
    if not payload.confirmed:
        raise WorkflowValidationError(
            "Please confirm that you have verified the order with the customer",
            step=step.value, field="confirmed",
        )

    origin = source or job
    financials = compute_job_financials(origin)
    now = _now()
    return _advance(state, {
        "order_confirmed": True,
        "order_confirmed_at": now,
        "installation_started_at": now,
        "order_summary": {
            "source_job_id": origin.id,
            "customer_id": origin.customer_id,
            "selected_products": copy.deepcopy(origin.selected_products or []),
            "measurements": copy.deepcopy(origin.measurements or []),
            "payment_summary": {
                "quotation": float(origin.quotation or 0),
                "subtotal": financials.subtotal,
                "deposit": financials.deposit,
                "deposit_paid": bool(origin.deposit_paid),
                "remaining_balance": financials.balance,
            },
        },
    })


def capture_photos(state: InstallationState, job, payload: PhotosInput) -> InstallationState:
    step = InstallationStep.PHOTOS
    _expect(state, step)
    photos = [p for p in payload.photos if p and p.strip()]
    if not photos:
        raise WorkflowValidationError(
            "Please take at least one photo of the completed installation",
            step=step.value, field="photos",
        )
    return _advance(state, {"photos": photos, "photos_uploaded_at": _now()})


def capture_signature(state: InstallationState, job, payload: SignatureInput) -> InstallationState:
    step = InstallationStep.SIGNATURE
    _expect(state, step)
    if not payload.signature.strip():
        raise WorkflowValidationError(
            "Please obtain customer signature", step=step.value, field="signature"
        )
    if not payload.signed_by.strip():
        raise WorkflowValidationError(
            "Please enter customer name", step=step.value, field="signed_by"
        )
    if not payload.customer_satisfied:
        raise WorkflowValidationError(
            "Please confirm customer is satisfied with the installation",
            step=step.value, field="customer_satisfied",
        )
    return _advance(state, {
        "signature": payload.signature,
        "signed_by": payload.signed_by.strip(),
        "signed_at": _now(),
        "customer_satisfied": True,
    })


def take_payment(state: InstallationState, job, payload: PaymentInput) -> InstallationState:
    """Collect the balance: quotation (or product subtotal) minus the deposit."""
    step = InstallationStep.PAYMENT
    _expect(state, step)
    balance_due = compute_job_financials(job).balance
    method = payload.payment_method

    if method == "online":
        raise WorkflowValidationError(
            "Online payment gateway integration pending. Please use cash or bank transfer.",
            step=step.value, field="payment_method",
        )

    change = 0.0
    cash_received = 0.0
    if method == "cash":
        if payload.cash_received is None:
            raise WorkflowValidationError(
                "Please confirm cash amount received", step=step.value, field="cash_received"
            )
        cash_received = round(payload.cash_received, 2)
        change = cash_change(cash_received, balance_due)
        reference = f"CASH-{_millis()}"
    else:
        reference = payload.bank_reference.strip()
        if not reference:
            raise WorkflowValidationError(
                "Please enter bank transfer reference number",
                step=step.value, field="bank_reference",
            )

    return _advance(state, {
        "payment_method": method,
        "payment_amount": balance_due,
        "payment_reference": reference,
        "cash_received": cash_received,
        "change": change,
        "paid_at": _now(),
        "balance_paid": True,
    })


def generate_invoice(job, payment_method: str | None = None, paid_in_full: bool = False) -> dict:
    """Build the invoice document from the job's line items."""
    financials = compute_job_financials(job)
    return {
        "invoice_number": f"INV-{job.id}-{_millis()}",
        "date": date.today().isoformat(),
        "customer_id": job.customer_id,
        "items": [item.model_dump() for item in financials.line_items],
        "measurements": copy.deepcopy(job.measurements or []),
        "subtotal": financials.subtotal,
        "deposit": financials.deposit,
        "balance": financials.balance,
        "total": financials.subtotal,
        "payment_method": payment_method,
        "paid_in_full": paid_in_full,
    }


def send_invoice(state: InstallationState, job, payload: InvoiceInput) -> InstallationState:
    """Generate the invoice with the chosen template; delivery is simulated."""
    step = InstallationStep.INVOICE
    _expect(state, step)
    template = payload.template_id.strip()
    if not template:
        raise WorkflowValidationError(
            "Please select an invoice template", step=step.value, field="template_id"
        )

    invoice = generate_invoice(
        job,
        payment_method=state.data.get("payment_method"),
        paid_in_full=bool(state.data.get("balance_paid")),
    )
    logger.info(f"Invoice {invoice['invoice_number']} generated with template '{template}'")
    return _advance(state, {
        "invoice_sent": True,
        "invoice_sent_at": _now(),
        "invoice_number": invoice["invoice_number"],
        "invoice_template": template,
        "invoice": invoice,
    })


def finish(state: InstallationState) -> dict:
    """Hand the accumulated installation data back to the caller."""
    if not state.is_complete:
        raise WorkflowStateError(
            f"Installation workflow is still at '{state.current_step.value}'",
            step=state.current_step.value,
        )
    return {**state.data, "completed_at": _now(), "status": "completed"}


# --- Dispatch ---

STEP_HANDLERS = {
    InstallationStep.CONFIRM_ORDER: (OrderConfirmationInput, confirm_order),
    InstallationStep.PHOTOS: (PhotosInput, capture_photos),
    InstallationStep.SIGNATURE: (SignatureInput, capture_signature),
    InstallationStep.PAYMENT: (PaymentInput, take_payment),
    InstallationStep.INVOICE: (InvoiceInput, send_invoice),
}


def parse_step(step: str) -> InstallationStep:
    try:
        return InstallationStep(step)
    except ValueError:
        raise WorkflowValidationError(f"Unknown installation step '{step}'", step=step) from None


def advance(
    state: InstallationState,
    step: str | InstallationStep,
    job,
    payload: BaseModel | dict | None = None,
    source=None,
) -> InstallationState:
    """Run one named step against the state and return the next state."""
    step = parse_step(step) if isinstance(step, str) else step
    if step not in STEP_HANDLERS:
        raise WorkflowStateError("Use finish to complete the installation", step=step.value)

    payload_model, handler = STEP_HANDLERS[step]
    if not isinstance(payload, payload_model):
        try:
            payload = payload_model.model_validate(payload or {})
        except ValidationError as e:
            raise WorkflowValidationError(f"Invalid {step.value} data: {e.errors()[0]['msg']}", step=step.value) from e

    if step == InstallationStep.CONFIRM_ORDER:
        return handler(state, job, payload, source=source)
    return handler(state, job, payload)
