"""
Domain Errors
Exceptions raised by the scoring and distribution services
"""
from typing import Optional, Any


class SalesCRMError(Exception):
    """Base class for domain errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ContactValidationError(SalesCRMError):
    """Raised when intake data lacks required fields."""
    pass


class RecordNotFoundError(SalesCRMError):
    """Raised when a referenced contact or advisor does not exist."""
    def __init__(self, entity: str, record_id: Any):
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity} {record_id} not found")


class DuplicateRecordError(SalesCRMError):
    """Raised when a unique field is already registered."""
    def __init__(self, entity: str, field: str, value: Any):
        self.entity = entity
        self.field = field
        self.value = value
        super().__init__(f"{entity.capitalize()} with {field} '{value}' already exists")


class DuplicateContactError(DuplicateRecordError):
    """Raised when a contact's phone or email is already registered."""
    def __init__(self, field: str, value: Any):
        super().__init__("contact", field, value)


class CapacityExceededError(SalesCRMError):
    """Raised when an increment would push an advisor past max_contacts."""
    def __init__(self, advisor_id: int, message: Optional[str] = None):
        self.advisor_id = advisor_id
        super().__init__(message or f"Advisor {advisor_id} has no remaining capacity")


class PlanningError(SalesCRMError):
    """Raised when the planner is given inconsistent input."""
    pass


class DistributionExecutionError(SalesCRMError):
    """
    Raised when a distribution batch could not be committed.

    The transaction has already been rolled back when this is raised;
    `plan` is the unapplied plan and `cause` the underlying failure.
    """
    def __init__(self, message: str, plan: Any = None, cause: Optional[BaseException] = None):
        self.plan = plan
        self.cause = cause
        super().__init__(message)
