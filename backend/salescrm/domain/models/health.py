"""
Data Health Models
Reports over the stored contact base
"""
from pydantic import BaseModel
from typing import Optional, List, Dict, Any

from salescrm.domain.models.quality import QualityAnalysis


def quality_bucket(score: int) -> str:
    """excellent >= 80, good >= 60, fair >= 40, otherwise poor"""
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "fair"
    return "poor"


class DuplicateEmailGroup(BaseModel):
    email: str
    contact_ids: List[int]

    @property
    def count(self) -> int:
        return len(self.contact_ids)


class DatabaseHealth(BaseModel):
    """Aggregate quality figures for all stored contacts"""
    total_contacts: int = 0
    suspicious_contacts: int = 0
    invalid_phone_contacts: int = 0
    unassigned_contacts: int = 0
    duplicate_email_groups: List[DuplicateEmailGroup] = []
    quality_distribution: Dict[str, int] = {"excellent": 0, "good": 0, "fair": 0, "poor": 0}
    average_quality_score: float = 0.0


class ImprovementSuggestion(BaseModel):
    type: str
    priority: str
    action: str
    description: str
    endpoint: Optional[str] = None
    params: Dict[str, Any] = {}


class BulkAnalysisEntry(BaseModel):
    """One contact's outcome in a bulk analysis; exactly one of analysis/error is set"""
    contact_id: int
    name: Optional[str] = None
    analysis: Optional[QualityAnalysis] = None
    error: Optional[str] = None
