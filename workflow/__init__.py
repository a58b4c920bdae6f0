from workflow.errors import WorkflowError, WorkflowValidationError, WorkflowStateError
from workflow.measurement import complete_measurement, record_deposit, defer_deposit, pending_installation_scheduling
from workflow.scheduling import schedule_installation, validate_installation_date
from workflow.installation import InstallationState, InstallationStep, advance, finish
from workflow.runner import run_installation_step, finish_installation
from workflow.assignment import unassigned_jobs, assign_job

__all__ = [
    "WorkflowError", "WorkflowValidationError", "WorkflowStateError",
    "complete_measurement", "record_deposit", "defer_deposit", "pending_installation_scheduling",
    "schedule_installation", "validate_installation_date",
    "InstallationState", "InstallationStep", "advance", "finish",
    "run_installation_step", "finish_installation",
    "unassigned_jobs", "assign_job",
]
