"""Tests for installation date rules and installation job creation."""

from datetime import date, timedelta

import pytest

from workflow.errors import WorkflowStateError, WorkflowValidationError
from workflow.measurement import defer_deposit, record_deposit
from workflow.scheduling import (
    DEFAULT_INSTALLATION_CHECKLIST, _normalize_time, earliest_installation_date,
    schedule_installation, suggested_installation_date, validate_installation_date,
)

TODAY = date(2025, 3, 10)


class TestInstallationDates:

    def test_earliest_is_today_for_past_measurement(self):
        assert earliest_installation_date(date(2025, 3, 1), today=TODAY) == TODAY

    def test_earliest_is_measurement_date_when_later(self):
        assert earliest_installation_date(date(2025, 3, 20), today=TODAY) == date(2025, 3, 20)

    def test_earliest_without_measurement_date(self):
        assert earliest_installation_date(None, today=TODAY) == TODAY

    def test_suggested_adds_lead_time(self):
        assert suggested_installation_date(date(2025, 3, 9), today=TODAY) == date(2025, 3, 16)

    def test_suggested_never_before_today(self):
        assert suggested_installation_date(date(2025, 1, 1), today=TODAY) == TODAY


class TestValidateInstallationDate:

    def test_accepts_measurement_day(self):
        assert validate_installation_date(TODAY, TODAY, today=TODAY) == TODAY

    def test_missing_date(self):
        with pytest.raises(WorkflowValidationError, match="Please select an installation date"):
            validate_installation_date(None, TODAY, today=TODAY)

    def test_past_date(self):
        with pytest.raises(WorkflowValidationError, match="cannot be in the past"):
            validate_installation_date(TODAY - timedelta(days=1), None, today=TODAY)

    def test_before_measurement_date(self):
        with pytest.raises(WorkflowValidationError, match="before the measurement date"):
            validate_installation_date(date(2025, 3, 12), date(2025, 3, 15), today=TODAY)


class TestNormalizeTime:

    @pytest.mark.parametrize("value,expected", [
        ("09:00", "09:00"),
        ("2:30 PM", "14:30"),
        ("9am", "09:00"),
        ("", "09:00"),
        (None, "09:00"),
    ])
    def test_formats(self, value, expected):
        assert _normalize_time(value) == expected

    def test_garbage_rejected(self):
        with pytest.raises(WorkflowValidationError) as exc:
            _normalize_time("whenever")
        assert exc.value.field == "installation_time"


class TestScheduleInstallation:

    def test_creates_installation_job(self, db_session, measurement_job, tenant):
        record_deposit(db_session, measurement_job, "card", tenant["owner"])
        target = date.today() + timedelta(days=7)

        installation = schedule_installation(db_session, measurement_job, target, "10:30", tenant["owner"])
        db_session.commit()

        assert installation.id.startswith("JOB-")
        assert installation.id != measurement_job.id
        assert installation.job_type == "installation"
        assert installation.status == "pending"
        assert installation.employee_id is None
        assert installation.parent_job_id == "JOB-M1"
        assert installation.scheduled_date == target
        assert installation.scheduled_time == "10:30"
        assert installation.customer_id == "cust-1"
        assert installation.business_id == "biz-1"
        assert installation.deposit == 300.0
        assert installation.deposit_paid is True
        assert installation.quotation == 1000.0
        assert installation.title == "Installation - Front room blinds"
        assert [c["id"] for c in installation.checklist] == [c["id"] for c in DEFAULT_INSTALLATION_CHECKLIST]
        assert installation.history[0].action == "installation_job_created"

    def test_closes_measurement_job(self, db_session, measurement_job, tenant):
        defer_deposit(db_session, measurement_job, "Paying on install day", tenant["owner"])
        schedule_installation(db_session, measurement_job, date.today(), None, tenant["owner"])
        db_session.commit()

        assert measurement_job.status == "completed"
        assert measurement_job.needs_installation_scheduling is False
        assert measurement_job.completed_date is not None
        assert measurement_job.history[-1].action == "installation_scheduled"

    def test_copies_do_not_share_data(self, db_session, measurement_job, tenant):
        record_deposit(db_session, measurement_job, "card", tenant["owner"])
        installation = schedule_installation(db_session, measurement_job, date.today(), "09:00", tenant["owner"])

        installation.measurements[0]["width"] = 999
        installation.images.append("https://img.example/extra.jpg")
        assert measurement_job.measurements[0]["width"] == 120.0
        assert measurement_job.images == ["https://img.example/front.jpg"]

    def test_requires_deposit_decision(self, db_session, measurement_job, tenant):
        with pytest.raises(WorkflowStateError):
            schedule_installation(db_session, measurement_job, date.today(), "09:00", tenant["owner"])

    def test_rejects_past_date(self, db_session, measurement_job, tenant):
        record_deposit(db_session, measurement_job, "card", tenant["owner"])
        with pytest.raises(WorkflowValidationError, match="cannot be in the past"):
            schedule_installation(
                db_session, measurement_job, date.today() - timedelta(days=1), "09:00", tenant["owner"]
            )
        assert measurement_job.status == "in-progress"

    def test_rejects_date_before_future_measurement(self, db_session, measurement_job, tenant):
        measurement_job.scheduled_date = date.today() + timedelta(days=5)
        record_deposit(db_session, measurement_job, "card", tenant["owner"])
        with pytest.raises(WorkflowValidationError, match="before the measurement date"):
            schedule_installation(
                db_session, measurement_job, date.today() + timedelta(days=2), "09:00", tenant["owner"]
            )

    def test_only_one_installation_per_measurement(self, db_session, measurement_job, tenant):
        record_deposit(db_session, measurement_job, "card", tenant["owner"])
        schedule_installation(db_session, measurement_job, date.today(), "09:00", tenant["owner"])
        db_session.commit()

        with pytest.raises(WorkflowStateError):
            schedule_installation(db_session, measurement_job, date.today(), "09:00", tenant["owner"])

    def test_rejects_non_measurement_job(self, db_session, measurement_job, tenant):
        measurement_job.job_type = "task"
        with pytest.raises(WorkflowStateError):
            schedule_installation(db_session, measurement_job, date.today(), "09:00", tenant["owner"])
