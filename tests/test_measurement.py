"""Tests for measurement completion, the deposit decision and the scheduling queue."""

from datetime import date, timedelta

import pytest

from models.models import Job
from schemas.jobs import JobMeasurement, SelectedProduct
from workflow.errors import WorkflowStateError, WorkflowValidationError
from workflow.measurement import (
    complete_measurement, defer_deposit, pending_installation_scheduling, record_deposit,
)
from workflow.scheduling import schedule_installation


class TestCompleteMeasurement:

    def test_stores_measurements_and_starts_job(self, db_session, tenant):
        job = Job(id="JOB-NEW", title="Bay window", job_type="measurement", status="confirmed",
                  business_id="biz-1", customer_id="cust-1", scheduled_date=date.today(),
                  measurements=[], selected_products=[])
        db_session.add(job)
        db_session.commit()

        complete_measurement(
            db_session, job,
            [JobMeasurement(window_id="W1", width=120, height=150, product_name="Roller Blind", product_price=89)],
            tenant["employee"],
            selected_products=[SelectedProduct(product_id="p1", product_name="Pelmet", price=40)],
        )
        db_session.commit()

        assert job.status == "in-progress"
        assert job.start_time is not None
        assert job.measurements[0]["window_id"] == "W1"
        assert job.selected_products[0]["product_name"] == "Pelmet"
        assert job.history[-1].action == "measurements_completed"

    def test_requires_at_least_one_measurement(self, db_session, measurement_job, tenant):
        with pytest.raises(WorkflowValidationError) as exc:
            complete_measurement(db_session, measurement_job, [], tenant["employee"])
        assert exc.value.field == "measurements"

    def test_rejects_installation_jobs(self, db_session, tenant):
        job = Job(id="JOB-INS", title="Fit", job_type="installation", business_id="biz-1")
        db_session.add(job)
        db_session.commit()
        with pytest.raises(WorkflowStateError):
            complete_measurement(
                db_session, job, [JobMeasurement(window_id="W1", width=1, height=1)], tenant["employee"]
            )


class TestRecordDeposit:

    def test_recommended_deposit_from_quotation(self, db_session, measurement_job, tenant):
        record_deposit(db_session, measurement_job, "card", tenant["employee"])
        db_session.commit()

        assert measurement_job.deposit == 300.0
        assert measurement_job.deposit_paid is True
        assert measurement_job.deposit_payment_method == "card"
        assert measurement_job.deposit_customer_reference.startswith("DEP-")
        assert len(measurement_job.deposit_customer_reference) == len("DEP-") + 8
        assert measurement_job.history[-1].action == "deposit_paid"

    def test_deposit_uses_product_subtotal(self, db_session, measurement_job, tenant):
        measurement_job.measurements = [
            {"window_id": "W1", "width": 100, "height": 100, "product_name": "Roller", "product_price": 100},
            {"window_id": "W2", "width": 100, "height": 100, "product_name": "Roller", "product_price": 150},
        ]
        db_session.commit()

        record_deposit(db_session, measurement_job, "cash", tenant["employee"])
        assert measurement_job.deposit == 75.0

    def test_custom_amount(self, db_session, measurement_job, tenant):
        record_deposit(db_session, measurement_job, "bank-transfer", tenant["employee"], custom_amount=450.0)
        assert measurement_job.deposit == 450.0

    @pytest.mark.parametrize("amount", [0.0, -10.0, 1000.01])
    def test_custom_amount_out_of_range(self, db_session, measurement_job, tenant, amount):
        with pytest.raises(WorkflowValidationError) as exc:
            record_deposit(db_session, measurement_job, "card", tenant["employee"], custom_amount=amount)
        assert exc.value.field == "custom_amount"
        assert measurement_job.deposit_paid is False

    def test_requires_measurements(self, db_session, measurement_job, tenant):
        measurement_job.measurements = []
        with pytest.raises(WorkflowValidationError):
            record_deposit(db_session, measurement_job, "card", tenant["employee"])

    def test_zero_subtotal_rejected(self, db_session, measurement_job, tenant):
        measurement_job.quotation = 0.0
        with pytest.raises(WorkflowValidationError) as exc:
            record_deposit(db_session, measurement_job, "card", tenant["employee"])
        assert exc.value.field == "subtotal"
        assert measurement_job.deposit_paid is False
        assert measurement_job.deposit_customer_reference is None

    def test_cannot_pay_twice(self, db_session, measurement_job, tenant):
        record_deposit(db_session, measurement_job, "card", tenant["employee"])
        with pytest.raises(WorkflowStateError):
            record_deposit(db_session, measurement_job, "card", tenant["employee"])

    def test_unknown_method(self, db_session, measurement_job, tenant):
        with pytest.raises(WorkflowValidationError) as exc:
            record_deposit(db_session, measurement_job, "cheque", tenant["employee"])
        assert exc.value.field == "payment_method"

    def test_paying_after_deferral_clears_skip(self, db_session, measurement_job, tenant):
        defer_deposit(db_session, measurement_job, "Customer paying next week", tenant["employee"])
        record_deposit(db_session, measurement_job, "card", tenant["employee"])

        assert measurement_job.status == "in-progress"
        assert measurement_job.deposit_payment_skipped is False
        assert measurement_job.deposit_skip_reason is None


class TestDeferDeposit:

    def test_defer_marks_job_for_scheduling(self, db_session, measurement_job, tenant):
        defer_deposit(db_session, measurement_job, "  Awaiting finance approval ", tenant["employee"])
        db_session.commit()

        assert measurement_job.deposit_payment_skipped is True
        assert measurement_job.deposit_skip_reason == "Awaiting finance approval"
        assert measurement_job.needs_installation_scheduling is True
        assert measurement_job.status == "awaiting-deposit"
        assert measurement_job.deposit_paid is False
        assert measurement_job.history[-1].action == "deposit_deferred"

    @pytest.mark.parametrize("reason", ["", "   ", None])
    def test_blank_reason_rejected(self, db_session, measurement_job, tenant, reason):
        with pytest.raises(WorkflowValidationError) as exc:
            defer_deposit(db_session, measurement_job, reason, tenant["employee"])
        assert exc.value.message == "Please provide a reason for deferring payment"
        assert measurement_job.deposit_payment_skipped is False

    def test_cannot_defer_after_payment(self, db_session, measurement_job, tenant):
        record_deposit(db_session, measurement_job, "card", tenant["employee"])
        with pytest.raises(WorkflowStateError):
            defer_deposit(db_session, measurement_job, "Changed mind", tenant["employee"])


class TestPendingInstallationScheduling:

    def test_paid_and_deferred_jobs_are_listed(self, db_session, measurement_job, tenant):
        other = Job(id="JOB-M2", title="Back bedroom", job_type="measurement", status="in-progress",
                    business_id="biz-1", customer_id="cust-1", scheduled_date=date.today(),
                    quotation=400.0, measurements=[{"window_id": "W1", "width": 1, "height": 1}])
        db_session.add(other)
        db_session.commit()

        record_deposit(db_session, measurement_job, "card", tenant["employee"])
        defer_deposit(db_session, other, "Waiting on landlord", tenant["employee"])
        db_session.commit()

        ids = {j.id for j in pending_installation_scheduling(db_session, "biz-1")}
        assert ids == {"JOB-M1", "JOB-M2"}

    def test_job_without_deposit_decision_is_not_listed(self, db_session, measurement_job):
        assert pending_installation_scheduling(db_session, "biz-1") == []

    def test_scheduled_job_leaves_queue(self, db_session, measurement_job, tenant):
        record_deposit(db_session, measurement_job, "card", tenant["employee"])
        schedule_installation(
            db_session, measurement_job, date.today() + timedelta(days=7), "09:00", tenant["employee"]
        )
        db_session.commit()

        assert pending_installation_scheduling(db_session, "biz-1") == []

    def test_scoped_to_business(self, db_session, measurement_job, tenant):
        record_deposit(db_session, measurement_job, "card", tenant["employee"])
        db_session.commit()

        assert pending_installation_scheduling(db_session, "other-biz") == []
        assert len(pending_installation_scheduling(db_session)) == 1
