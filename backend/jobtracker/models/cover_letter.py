from sqlalchemy import Column, ForeignKey, String, Integer, Text, DateTime
from sqlalchemy.sql import func
from jobtracker.database import Base


class CoverLetter(Base):
    """
    Cover letter, optionally tied to a job and the resume it was written from.

    job_title/company_name/job_description are a snapshot taken when the
    letter was written and are not kept in sync with the linked job.
    """

    __tablename__ = "cover_letters"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)
    resume_id = Column(Integer, ForeignKey("resumes.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    job_title = Column(String(200), nullable=True)
    company_name = Column(String(200), nullable=True)
    job_description = Column(Text, nullable=True)
    resume_snippet = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
