"""
Job Model - SQLAlchemy ORM model for tracked job applications

Each job belongs to exactly one user and moves through the status
lifecycle governed by jobtracker.services.status.

Status Flow:
    Saved → Applied → Interviewing → Offer
    (any non-terminal status) → Rejected   (terminal)
"""

from sqlalchemy import Column, ForeignKey, String, Integer, Text, DateTime, JSON
from sqlalchemy.sql import func
from jobtracker.database import Base


class Job(Base):
    """
    Job application entity.

    Attributes:
        user_id: Owner (cascade-deleted with the user)
        title/company/location: Posting basics
        status: Current lifecycle label (base or owner's custom label)
        application_date/deadline: Optional key dates
        checklist: Ordered list of {"text": str, "isChecked": bool}
    """

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(200), nullable=False)
    company = Column(String(200), nullable=False)
    location = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(50), nullable=False, default="Saved", index=True)
    salary_min = Column(Integer, nullable=True)
    salary_max = Column(Integer, nullable=True)
    url = Column(String(2000), nullable=True)
    application_date = Column(DateTime, nullable=True)
    deadline = Column(DateTime, nullable=True)
    company_description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    referrals = Column(Text, nullable=True)
    role_details = Column(Text, nullable=True)
    checklist = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
