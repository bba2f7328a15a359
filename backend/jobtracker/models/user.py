"""
User Model - Identity records for password and OAuth logins

One row per email address regardless of how the account was created.
OAuth-only accounts have no password hash, so password login can never
succeed for them until a password is set.
"""

from sqlalchemy import Column, String, Integer, DateTime, JSON
from sqlalchemy.sql import func
from jobtracker.database import Base


class User(Base):
    """
    Registered user.

    Attributes:
        email: Unique login email (stored as submitted)
        password_hash: bcrypt hash, NULL for OAuth-only accounts
        display_name: Name shown in the UI
        role: "user" or "admin"
        google_id/apple_id/microsoft_id: Provider subject ids
        custom_statuses: User-defined job status labels, in creation order
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)
    display_name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default="user")
    google_id = Column(String(255), nullable=True, unique=True)
    apple_id = Column(String(255), nullable=True, unique=True)
    microsoft_id = Column(String(255), nullable=True, unique=True)
    custom_statuses = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
