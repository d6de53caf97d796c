"""
Distribution Models
Plans, options and results for assigning contacts to advisors
"""
from pydantic import BaseModel, Field
from typing import Optional, List

from salescrm.domain.models.contact import Contact


class DistributionOptions(BaseModel):
    """Every knob the planner recognizes, with its default"""
    max_assignments_per_run: Optional[int] = Field(
        default=None,
        ge=0,
        description="Stop placing contacts after this many assignments"
    )
    min_quality_score: Optional[int] = Field(
        default=None,
        ge=0,
        le=100,
        description="Contacts scoring below this are left unassigned"
    )


class Assignment(BaseModel):
    """One contact placed with one advisor"""
    contact_id: int
    advisor_id: int
    contact_name: Optional[str] = None
    advisor_name: Optional[str] = None


class AssignmentPlan(BaseModel):
    """Proposed assignments, in the order the planner decided them"""
    assignments: List[Assignment] = []
    unassigned_contacts: List[Contact] = []
    log: List[str] = []

    @property
    def is_empty(self) -> bool:
        return not self.assignments


class ExecutionResult(BaseModel):
    """Assignments committed by the executor"""
    applied: List[Assignment] = []
    unassigned_contacts: List[Contact] = []
    log: List[str] = []


class DistributionResult(BaseModel):
    """Caller-facing outcome of a distribution run"""
    assignments: List[Assignment] = []
    unassigned_contacts: List[Contact] = []
    message: str
    log: List[str] = []
