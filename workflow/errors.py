"""Typed errors raised by the job workflow."""


class WorkflowError(Exception):
    """Base class for workflow failures."""

    status_code = 400

    def __init__(self, message: str, step: str | None = None):
        super().__init__(message)
        self.message = message
        self.step = step

    def to_dict(self) -> dict:
        return {"error": self.message, "step": self.step}


class WorkflowValidationError(WorkflowError):
    """A gating rule was not satisfied; the caller must correct the input."""

    status_code = 422

    def __init__(self, message: str, step: str | None = None, field: str | None = None):
        super().__init__(message, step)
        self.field = field

    def to_dict(self) -> dict:
        return {"error": self.message, "step": self.step, "field": self.field}


class WorkflowStateError(WorkflowError):
    """A transition was attempted out of order or on the wrong kind of job."""

    status_code = 409
