from jobtracker.schemas.job import (
    JobCreate,
    JobUpdate,
    JobResponse,
    JobListResponse,
    ChecklistItem,
    StatusCatalogResponse,
    AddStatusRequest,
    AddStatusResponse,
)
from jobtracker.schemas.resume import ResumeCreate, ResumeUpdate, ResumeResponse
from jobtracker.schemas.cover_letter import CoverLetterCreate, CoverLetterUpdate, CoverLetterResponse
from jobtracker.schemas.auth import (
    RegisterRequest,
    RegisterResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    CsrfTokenResponse,
    UserResponse,
)

__all__ = [
    "JobCreate",
    "JobUpdate",
    "JobResponse",
    "JobListResponse",
    "ChecklistItem",
    "StatusCatalogResponse",
    "AddStatusRequest",
    "AddStatusResponse",
    "ResumeCreate",
    "ResumeUpdate",
    "ResumeResponse",
    "CoverLetterCreate",
    "CoverLetterUpdate",
    "CoverLetterResponse",
    "RegisterRequest",
    "RegisterResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "CsrfTokenResponse",
    "UserResponse",
]
