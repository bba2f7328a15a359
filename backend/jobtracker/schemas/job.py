from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, Field, StringConstraints, field_validator, model_validator

from jobtracker.services.status import DEFAULT_STATUS, MAX_LABEL_LENGTH

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
StatusLabel = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=MAX_LABEL_LENGTH)]

# Columns that may be omitted from an update but never set to null
NON_NULLABLE_UPDATE_FIELDS = ("title", "company", "status", "checklist")


class ChecklistItem(BaseModel):
    text: str = Field(..., max_length=500)
    isChecked: bool = False


class JobFields(BaseModel):
    location: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    salary_min: Optional[int] = Field(None, ge=0)
    salary_max: Optional[int] = Field(None, ge=0)
    url: Optional[str] = Field(None, max_length=2000)
    application_date: Optional[datetime] = None
    deadline: Optional[datetime] = None
    company_description: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)
    referrals: Optional[str] = None
    role_details: Optional[str] = None

    @field_validator("url")
    @classmethod
    def check_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return value

    @model_validator(mode="after")
    def check_salary_range(self):
        if self.salary_min is not None and self.salary_max is not None:
            if self.salary_min > self.salary_max:
                raise ValueError("salary_min cannot be greater than salary_max")
        return self


class JobCreate(JobFields):
    title: Title
    company: Title
    status: StatusLabel = DEFAULT_STATUS
    checklist: list[ChecklistItem] = []


class JobUpdate(JobFields):
    title: Optional[Title] = None
    company: Optional[Title] = None
    status: Optional[StatusLabel] = None
    checklist: Optional[list[ChecklistItem]] = None

    @model_validator(mode="before")
    @classmethod
    def reject_nulls(cls, data):
        if isinstance(data, dict):
            for field in NON_NULLABLE_UPDATE_FIELDS:
                if field in data and data[field] is None:
                    raise ValueError(f"{field} cannot be null")
        return data


class JobResponse(JobFields):
    id: int
    user_id: int
    title: str
    company: str
    status: str
    checklist: list[ChecklistItem] = []
    available_statuses: list[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class JobListResponse(BaseModel):
    jobs: list[JobResponse]
    total: int
    page: int
    per_page: int


class StatusCatalogResponse(BaseModel):
    statuses: list[str]
    custom: list[str]
    initial: list[str]
    max_custom: int


class AddStatusRequest(BaseModel):
    label: str = Field(..., max_length=MAX_LABEL_LENGTH)


class AddStatusResponse(BaseModel):
    selected: str
    created: bool
    statuses: list[str]
