from sqlalchemy import Column, ForeignKey, String, Integer, Text, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from jobtracker.database import Base


class Resume(Base):
    """
    Structured resume.

    Section columns hold ordered lists of entries, each with a stable "id".
    Unlinked from its job (job_id set NULL) when that job is deleted.
    """

    __tablename__ = "resumes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(100), nullable=False)
    summary = Column(Text, nullable=True)
    experience = Column(JSON, nullable=False, default=list)
    education = Column(JSON, nullable=False, default=list)
    skills = Column(JSON, nullable=False, default=list)
    projects = Column(JSON, nullable=False, default=list)
    achievements = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
