from typing import Optional

from pydantic import BaseModel, Field


class OptimizeResumeSectionRequest(BaseModel):
    section_title: str = Field(..., min_length=1, max_length=100)
    section_content: str = Field(..., min_length=1, max_length=10000)
    job_description: Optional[str] = Field(None, max_length=20000)


class OptimizeResumeSectionResponse(BaseModel):
    optimized_content: str


class OptimizeCoverLetterRequest(BaseModel):
    current_cover_letter: str = Field(..., min_length=1, max_length=20000)
    job_description: str = Field(..., min_length=1, max_length=20000)
    resume_snippet: Optional[str] = Field(None, max_length=10000)


class OptimizeCoverLetterResponse(BaseModel):
    optimized_cover_letter: str


class GenerateCoverLetterRequest(BaseModel):
    resume: str = Field(..., min_length=1, max_length=30000)
    job_description: str = Field(..., min_length=1, max_length=20000)


class GenerateCoverLetterResponse(BaseModel):
    cover_letter: str


class ImproveResumeRequest(BaseModel):
    resume_text: str = Field(..., min_length=1, max_length=30000)
    job_description: str = Field(..., min_length=1, max_length=20000)


class ImproveResumeResponse(BaseModel):
    improved_resume: str
