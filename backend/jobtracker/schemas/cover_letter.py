from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, Field, StringConstraints

LetterTitle = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
LetterContent = Annotated[str, StringConstraints(min_length=1)]


class CoverLetterSnapshot(BaseModel):
    job_id: Optional[int] = None
    resume_id: Optional[int] = None
    job_title: Optional[str] = Field(None, max_length=200)
    company_name: Optional[str] = Field(None, max_length=200)
    job_description: Optional[str] = None
    resume_snippet: Optional[str] = None


class CoverLetterCreate(CoverLetterSnapshot):
    title: LetterTitle
    content: LetterContent


class CoverLetterUpdate(CoverLetterSnapshot):
    title: Optional[LetterTitle] = None
    content: Optional[LetterContent] = None


class CoverLetterResponse(CoverLetterSnapshot):
    id: int
    user_id: int
    title: str
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
