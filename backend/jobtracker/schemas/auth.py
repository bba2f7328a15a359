import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    email: EmailStr
    # bcrypt only looks at the first 72 bytes
    password: str = Field(..., min_length=6, max_length=72)
    display_name: str = Field(..., min_length=3, max_length=100)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not re.search(r"[a-z]", value):
            raise ValueError("Password must contain at least one lowercase letter")
        if not re.search(r"[A-Z]", value):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"\d", value):
            raise ValueError("Password must contain at least one number")
        return value

    @field_validator("display_name")
    @classmethod
    def strip_display_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise ValueError("Display name must be at least 3 characters")
        return value


class RegisterResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=72)


class LoginResponse(BaseModel):
    message: str
    csrfToken: str
    access_token: Optional[str] = None
    token_type: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class CsrfTokenResponse(BaseModel):
    csrfToken: str


class UserResponse(BaseModel):
    id: int
    email: str
    display_name: str
    role: str
    custom_statuses: list[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
