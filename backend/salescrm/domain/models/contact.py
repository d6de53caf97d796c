"""
Contact Domain Models
Sales leads tracked through the status pipeline
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, Mapping
from datetime import datetime
from enum import Enum


class ContactStatus(str, Enum):
    """Pipeline status of a contact"""
    NEW = "New"
    CONTACTED = "Contacted"
    FOLLOW_UP = "FollowUp"
    NOT_INTERESTED = "NotInterested"
    CONVERTED = "Converted"


class InteractionType(str, Enum):
    """Kind of touchpoint an advisor had with a contact"""
    CALL = "call"
    SMS = "sms"
    EMAIL = "email"
    MEETING = "meeting"


class Contact(BaseModel):
    """Stored contact with derived quality fields"""
    id: int
    name: str
    phone: str
    email: Optional[str] = None
    status: ContactStatus = ContactStatus.NEW
    notes: Optional[str] = None
    source: Optional[str] = None

    # Derived by the scorer
    quality_score: int = Field(default=0, ge=0, le=100)
    is_suspicious: bool = False
    ai_analysis_details: Optional[Dict[str, Any]] = None

    # Assignment and interaction tracking
    assigned_advisor_id: Optional[int] = None
    contact_count: int = 0
    last_contact_date: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"use_enum_values": True}


class ContactCreate(BaseModel):
    """Intake payload for a new contact (manual or bulk import)"""
    name: str = Field(..., min_length=2, max_length=100)
    phone: str = Field(..., min_length=1, max_length=32)
    email: Optional[str] = Field(None, max_length=255)
    status: ContactStatus = ContactStatus.NEW
    notes: Optional[str] = None
    source: Optional[str] = Field(None, max_length=100)


class ContactUpdate(BaseModel):
    """Partial update; only fields that are set are applied"""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, min_length=1, max_length=32)
    email: Optional[str] = Field(None, max_length=255)
    status: Optional[ContactStatus] = None
    notes: Optional[str] = None
    source: Optional[str] = Field(None, max_length=100)


class ContactFilters(BaseModel):
    """Filters for listing contacts; None means no constraint"""
    status: Optional[ContactStatus] = None
    assigned_advisor_id: Optional[int] = None
    unassigned_only: bool = False
    is_suspicious: Optional[bool] = None
    min_quality_score: Optional[int] = Field(None, ge=0, le=100)


class Interaction(BaseModel):
    """An advisor touchpoint logged against a contact"""
    type: InteractionType
    status: Optional[ContactStatus] = None
    notes: Optional[str] = None
    outcome: Optional[str] = None


# Fields the scoring pipeline reads from a contact
SCORED_FIELDS = ("id", "name", "phone", "email", "source", "notes")


def extract_contact_fields(contact: Any) -> Dict[str, Optional[str]]:
    """
    Read the scored fields from a Contact, a ContactCreate, a plain mapping
    or anything else.

    Missing attributes and non-string values come back as None (ids are
    stringified), so malformed input never raises.
    """
    if contact is None:
        return {name: None for name in SCORED_FIELDS}

    if isinstance(contact, BaseModel):
        raw = contact.model_dump()
    elif isinstance(contact, Mapping):
        raw = dict(contact)
    else:
        raw = {name: getattr(contact, name, None) for name in SCORED_FIELDS}

    fields: Dict[str, Optional[str]] = {}
    for name in SCORED_FIELDS:
        value = raw.get(name)
        if name == "id" and isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        fields[name] = value if isinstance(value, str) else None
    return fields
