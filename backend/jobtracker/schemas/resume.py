import uuid
from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, Field, StringConstraints, field_validator

ResumeName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]


def new_entry_id() -> str:
    return uuid.uuid4().hex


class Entry(BaseModel):
    """Base for resume section entries; every entry keeps a stable id."""

    id: str = Field(default_factory=new_entry_id, max_length=64)

    @field_validator("id", mode="before")
    @classmethod
    def assign_missing_id(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return new_entry_id()
        return str(value)


class ExperienceEntry(Entry):
    jobTitle: str = Field("", max_length=100)
    companyName: str = Field("", max_length=100)
    dates: str = Field("", max_length=50)
    description: str = Field("", max_length=5000)


class EducationEntry(Entry):
    degree: str = Field("", max_length=100)
    institution: str = Field("", max_length=100)
    graduationYear: str = Field("", max_length=20)
    details: Optional[str] = Field(None, max_length=500)


class TextEntry(Entry):
    value: str = Field("", max_length=200)


class ProjectEntry(Entry):
    title: str = Field("", max_length=100)
    description: str = Field("", max_length=5000)


class ResumeCreate(BaseModel):
    name: ResumeName
    summary: Optional[str] = Field(None, max_length=500)
    experience: list[ExperienceEntry] = []
    education: list[EducationEntry] = []
    skills: list[TextEntry] = []
    projects: list[ProjectEntry] = []
    achievements: list[TextEntry] = []
    job_id: Optional[int] = None
    is_active: bool = True


class ResumeUpdate(BaseModel):
    name: Optional[ResumeName] = None
    summary: Optional[str] = Field(None, max_length=500)
    experience: Optional[list[ExperienceEntry]] = None
    education: Optional[list[EducationEntry]] = None
    skills: Optional[list[TextEntry]] = None
    projects: Optional[list[ProjectEntry]] = None
    achievements: Optional[list[TextEntry]] = None
    job_id: Optional[int] = None
    is_active: Optional[bool] = None


class ResumeResponse(ResumeCreate):
    id: int
    user_id: int
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
