"""
SQLAlchemy Database Models
Maps to the contacts and advisors tables
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, Float, JSON, ForeignKey
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdvisorRecord(Base):
    """Advisor model - maps to advisors table"""
    __tablename__ = "advisors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(32))
    department = Column(String(100))
    is_active = Column(Boolean, nullable=False, default=True)
    performance_score = Column(Float, nullable=False, default=0.0)
    current_contact_count = Column(Integer, nullable=False, default=0)
    max_contacts = Column(Integer, nullable=False, default=50)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class ContactRecord(Base):
    """Contact model - maps to contacts table"""
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(32), nullable=False, unique=True, index=True)
    email = Column(String(255), index=True)
    status = Column(String(20), nullable=False, default="New")
    notes = Column(Text)
    source = Column(String(100))

    quality_score = Column(Integer, nullable=False, default=0)
    is_suspicious = Column(Boolean, nullable=False, default=False)
    ai_analysis_details = Column(JSON)

    assigned_advisor_id = Column(Integer, ForeignKey("advisors.id", ondelete="SET NULL"), index=True)
    contact_count = Column(Integer, nullable=False, default=0)
    last_contact_date = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
