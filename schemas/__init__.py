from schemas.jobs import (
    JobMeasurement, SelectedProduct, ChecklistItem, JobCreate, JobUpdate, JobResponse,
    JobFinancials, LineItem, InstallationStateResponse,
)
from schemas.catalog import CustomerResponse, ProductResponse

__all__ = [
    "JobMeasurement", "SelectedProduct", "ChecklistItem", "JobCreate", "JobUpdate", "JobResponse",
    "JobFinancials", "LineItem", "InstallationStateResponse", "CustomerResponse", "ProductResponse",
]
