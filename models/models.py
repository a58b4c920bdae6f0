"""ORM models for the BlindsCloud backend."""

import uuid
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, Date, Text, ForeignKey, JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def new_job_id() -> str:
    return f"JOB-{uuid.uuid4().hex[:8].upper()}"


class Business(Base):
    """A tenant: one blinds installation business."""

    __tablename__ = "businesses"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    email = Column(String, default="")
    phone = Column(String, default="")
    address = Column(String, default="")
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Business {self.id}: {self.name}>"


class User(Base):
    """An admin, business owner or employee account."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_uuid)
    email = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False, default="employee")  # admin, business, employee
    business_id = Column(String, ForeignKey("businesses.id"), nullable=True, index=True)
    permissions = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"


class Customer(Base):
    """A customer of a business."""

    __tablename__ = "customers"

    id = Column(String, primary_key=True, default=_uuid)
    business_id = Column(String, ForeignKey("businesses.id"), nullable=True, index=True)
    name = Column(String, nullable=False, index=True)
    email = Column(String, default="")
    phone = Column(String, default="")
    mobile = Column(String, default="")
    address = Column(String, default="")
    postcode = Column(String, default="")
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Customer {self.id}: {self.name}>"


class Product(Base):
    """A blinds product in a business catalog."""

    __tablename__ = "products"

    id = Column(String, primary_key=True, default=_uuid)
    business_id = Column(String, ForeignKey("businesses.id"), nullable=True, index=True)
    name = Column(String, nullable=False)
    category = Column(String, default="")
    description = Column(Text, default="")
    price = Column(Float, nullable=False, default=0.0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Product {self.name}: ${self.price:.2f}>"


class Job(Base):
    """A measurement, installation or task job."""

    __tablename__ = "jobs"

    id = Column(String, primary_key=True, default=new_job_id)
    title = Column(String, nullable=False, default="")
    description = Column(Text, default="")
    job_type = Column(String, nullable=False, default="measurement")  # measurement, installation, task
    status = Column(String, nullable=False, default="pending", index=True)

    customer_id = Column(String, ForeignKey("customers.id"), nullable=True, index=True)
    business_id = Column(String, ForeignKey("businesses.id"), nullable=True, index=True)
    employee_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    parent_job_id = Column(String, ForeignKey("jobs.id"), nullable=True, index=True)

    scheduled_date = Column(Date, nullable=True)
    scheduled_time = Column(String, default="09:00")
    completed_date = Column(DateTime, nullable=True)
    start_time = Column(DateTime, nullable=True)

    # Financials
    quotation = Column(Float, default=0.0)
    deposit = Column(Float, default=0.0)
    deposit_paid = Column(Boolean, default=False)
    deposit_paid_at = Column(DateTime, nullable=True)
    deposit_payment_method = Column(String, nullable=True)  # card, cash, bank-transfer
    deposit_customer_reference = Column(String, nullable=True)
    deposit_payment_skipped = Column(Boolean, default=False)
    deposit_skip_reason = Column(Text, nullable=True)
    needs_installation_scheduling = Column(Boolean, default=False)
    invoice = Column(Float, nullable=True)

    # Content
    images = Column(JSON, default=list)
    documents = Column(JSON, default=list)
    checklist = Column(JSON, default=list)  # List of {id, text, completed}
    measurements = Column(JSON, default=list)
    selected_products = Column(JSON, default=list)
    installation_state = Column(JSON, nullable=True)  # {current_step, data}

    # Installation results
    signature = Column(Text, nullable=True)
    installation_images = Column(JSON, default=list)
    payment_reference = Column(String, nullable=True)
    final_payment_paid = Column(Boolean, default=False)
    final_payment_date = Column(DateTime, nullable=True)
    invoice_sent = Column(Boolean, default=False)
    invoice_sent_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    history = relationship(
        "JobHistoryEntry",
        back_populates="job",
        order_by="JobHistoryEntry.sequence",
        cascade="all, delete-orphan",
    )
    customer = relationship("Customer")
    employee = relationship("User")

    def __repr__(self):
        return f"<Job {self.id}: {self.job_type} ({self.status})>"


class JobHistoryEntry(Base):
    """One immutable audit entry; appended, never updated."""

    __tablename__ = "job_history"
    __table_args__ = (UniqueConstraint("job_id", "sequence", name="uq_job_history_sequence"),)

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(String, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow)
    action = Column(String, nullable=False)
    description = Column(Text, default="")
    user_id = Column(String, default="")
    user_name = Column(String, default="")
    data = Column(JSON, nullable=True)

    job = relationship("Job", back_populates="history")

    def __repr__(self):
        return f"<JobHistory {self.job_id}#{self.sequence}: {self.action}>"


class ActivityLog(Base):
    """Audit row written by every mutating endpoint."""

    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=True, index=True)
    action = Column(String, nullable=False)
    target_type = Column(String, default="")
    target_id = Column(String, default="")
    details = Column(JSON, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<ActivityLog {self.action} {self.target_type}:{self.target_id}>"
