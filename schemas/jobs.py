"""Pydantic schemas for jobs, the measurement/installation workflow and API responses."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


JobType = Literal["measurement", "installation", "task"]
JobStatus = Literal[
    "pending", "confirmed", "in-progress", "completed", "cancelled",
    "tbd", "awaiting-deposit", "awaiting-payment",
]


# --- Job content ---

class JobMeasurement(BaseModel):
    """Dimensions and fitting options for a single window."""
    window_id: str = Field(min_length=1, description="Window label, e.g. 'W1'")
    width: float = Field(gt=0, description="Width in cm")
    height: float = Field(gt=0, description="Height in cm")
    location: str = ""
    notes: str = ""
    control_type: Literal["chain-cord", "wand", "none"] = "none"
    bracket_type: Literal["top-fix", "face-fix"] = "top-fix"
    photos: list[str] = Field(default_factory=list, description="Data URIs or URLs")
    product_name: str | None = None
    product_price: float | None = Field(default=None, ge=0)


class SelectedProduct(BaseModel):
    """A catalog product chosen for the job."""
    product_id: str
    product_name: str
    quantity: int = Field(default=1, ge=1)
    price: float = Field(default=0.0, ge=0)
    customer_approved: bool = False


class ChecklistItem(BaseModel):
    id: str
    text: str
    completed: bool = False


class JobHistoryEntryResponse(BaseModel):
    """Immutable audit entry."""
    sequence: int
    timestamp: datetime
    action: str
    description: str
    user_id: str
    user_name: str
    data: dict | None = None

    model_config = ConfigDict(from_attributes=True)


# --- Job CRUD ---

class JobCreate(BaseModel):
    title: str = Field(min_length=2)
    description: str = ""
    job_type: JobType = "measurement"
    customer_id: str
    employee_id: str | None = None
    scheduled_date: date
    scheduled_time: str = "09:00"
    quotation: float = Field(default=0.0, ge=0)
    checklist: list[ChecklistItem] = Field(default_factory=list)
    measurements: list[JobMeasurement] = Field(default_factory=list)
    selected_products: list[SelectedProduct] = Field(default_factory=list)


class JobUpdate(BaseModel):
    """Partial update; unset fields are left untouched."""
    title: str | None = Field(default=None, min_length=2)
    description: str | None = None
    status: JobStatus | None = None
    employee_id: str | None = None
    scheduled_date: date | None = None
    scheduled_time: str | None = None
    quotation: float | None = Field(default=None, ge=0)
    checklist: list[ChecklistItem] | None = None
    images: list[str] | None = None
    documents: list[str] | None = None


class JobResponse(BaseModel):
    """Job data for API responses."""
    id: str
    title: str
    description: str | None
    job_type: str
    status: str
    customer_id: str | None
    business_id: str | None
    employee_id: str | None
    parent_job_id: str | None
    scheduled_date: date | None
    scheduled_time: str | None
    completed_date: datetime | None
    quotation: float | None
    deposit: float | None
    deposit_paid: bool | None
    deposit_paid_at: datetime | None
    deposit_payment_method: str | None
    deposit_customer_reference: str | None
    deposit_payment_skipped: bool | None
    deposit_skip_reason: str | None
    needs_installation_scheduling: bool | None
    invoice: float | None
    images: list[str] | None
    documents: list[str] | None
    checklist: list[dict] | None
    measurements: list[dict] | None
    selected_products: list[dict] | None
    installation_images: list[str] | None
    payment_reference: str | None
    final_payment_paid: bool | None
    invoice_sent: bool | None
    job_history: list[JobHistoryEntryResponse] = Field(
        default_factory=list, validation_alias=AliasChoices("history", "job_history")
    )
    created_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


# --- Financials ---

class LineItem(BaseModel):
    description: str
    quantity: int
    unit_price: float
    total: float
    source: Literal["measurement", "product"]


class JobFinancials(BaseModel):
    """Derived totals shared by every workflow step."""
    line_items: list[LineItem] = Field(default_factory=list)
    computed_subtotal: float = 0.0
    subtotal: float = 0.0
    deposit: float = 0.0
    balance: float = 0.0
    recommended_deposit: float = 0.0


# --- Measurement & deposit ---

class MeasurementCompletion(BaseModel):
    measurements: list[JobMeasurement] = Field(default_factory=list)
    selected_products: list[SelectedProduct] | None = None


class DepositPaymentRequest(BaseModel):
    payment_method: Literal["card", "cash", "bank-transfer"]
    custom_amount: float | None = None


class DepositDeferralRequest(BaseModel):
    reason: str = ""


# --- Installation scheduling ---

class InstallationScheduleRequest(BaseModel):
    installation_date: date | None = None
    installation_time: str | None = None


class InstallationDateWindow(BaseModel):
    measurement_date: date | None
    earliest_date: date
    suggested_date: date


# --- Installation workflow step payloads ---

class OrderConfirmationInput(BaseModel):
    confirmed: bool = False


class PhotosInput(BaseModel):
    photos: list[str] = Field(default_factory=list)


class SignatureInput(BaseModel):
    signature: str = ""
    signed_by: str = ""
    customer_satisfied: bool = False


class PaymentInput(BaseModel):
    payment_method: Literal["cash", "bank_transfer", "online"] = "cash"
    cash_received: float | None = Field(default=None, ge=0)
    bank_reference: str = ""


class InvoiceInput(BaseModel):
    template_id: str = ""


class InstallationStateResponse(BaseModel):
    job_id: str
    current_step: str
    data: dict[str, Any] = Field(default_factory=dict)


class InstallationCompletion(BaseModel):
    job: JobResponse
    installation: dict[str, Any]


# --- Assignment ---

class AssignJobRequest(BaseModel):
    employee_id: str
