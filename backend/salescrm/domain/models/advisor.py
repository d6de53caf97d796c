"""
Advisor Domain Models
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Dict
from datetime import datetime


DEFAULT_MAX_CONTACTS = 50


class Advisor(BaseModel):
    """Sales advisor with a contact capacity ceiling"""
    id: int
    name: str
    email: str
    is_active: bool = True
    performance_score: float = Field(default=0.0, ge=0, le=100)
    current_contact_count: int = Field(default=0, ge=0)
    max_contacts: int = Field(default=DEFAULT_MAX_CONTACTS, ge=0)
    phone: Optional[str] = None
    department: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def available_capacity(self) -> int:
        return max(0, self.max_contacts - self.current_contact_count)

    @property
    def has_capacity(self) -> bool:
        return self.is_active and self.current_contact_count < self.max_contacts


class AdvisorCreate(BaseModel):
    """Payload for registering an advisor"""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    performance_score: float = Field(default=0.0, ge=0, le=100)
    max_contacts: int = Field(default=DEFAULT_MAX_CONTACTS, ge=0)
    phone: Optional[str] = None
    department: Optional[str] = None


class AdvisorUpdate(BaseModel):
    """Partial advisor edit; omitted fields stay as they are"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    performance_score: Optional[float] = Field(None, ge=0, le=100)
    max_contacts: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class AdvisorWorkload(BaseModel):
    """Snapshot of an advisor's assigned contacts"""
    advisor_id: int
    name: str
    is_active: bool
    total_contacts: int
    max_contacts: int
    available_capacity: int
    status_distribution: Dict[str, int] = {}
    quality_distribution: Dict[str, int] = {}


class AdvisorPerformance(BaseModel):
    """Outcome metrics over the contacts currently assigned to an advisor"""
    advisor_id: int
    name: str
    is_active: bool
    department: Optional[str] = None
    performance_score: float
    current_contact_count: int
    max_contacts: int
    capacity_utilization: float  # percent of max_contacts, 0 when max is 0
    converted_contacts: int
    conversion_rate: float  # percent
    contacted_contacts: int
    contact_rate: float  # percent
    average_quality_score: float
