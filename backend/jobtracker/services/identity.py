"""
Identity Store - user lookup, creation and password verification

Passwords are hashed with bcrypt before anything is persisted; the hash
is the only form ever stored. Verification uses bcrypt.checkpw, which
compares in constant time.

Emails are stored and looked up in one normalized spelling (see
normalize_email), so "alice@Example.COM" and "alice@example.com" are the
same account.
"""

import logging
from functools import lru_cache
from typing import Optional

import bcrypt
from email_validator import EmailNotValidError, validate_email
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from jobtracker.config import get_settings
from jobtracker.errors import DuplicateEmail, ValidationError
from jobtracker.models import User

logger = logging.getLogger(__name__)

OAUTH_PROVIDERS = ("google", "apple", "microsoft")


def hash_password(plaintext: str, rounds: Optional[int] = None) -> str:
    rounds = rounds or get_settings().bcrypt_rounds
    return bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


@lru_cache
def _dummy_hash() -> bytes:
    # Checked against when the email is unknown so a failed login costs the
    # same whether or not the account exists.
    return hash_password("not-a-real-password").encode("utf-8")


def verify_password(user: Optional[User], plaintext: str) -> bool:
    """
    Check a plaintext password against a user's stored hash.

    Returns False for unknown users and OAuth-only accounts, after doing
    comparable bcrypt work.
    """
    candidate = plaintext.encode("utf-8")
    if user is None or not user.password_hash:
        bcrypt.checkpw(candidate, _dummy_hash())
        return False
    try:
        return bcrypt.checkpw(candidate, user.password_hash.encode("utf-8"))
    except ValueError:
        logger.warning(f"Malformed password hash for user {user.id}")
        return False


async def check_password(user: Optional[User], plaintext: str) -> bool:
    """verify_password() off the event loop; bcrypt is deliberately slow."""
    return await run_in_threadpool(verify_password, user, plaintext)


def provider_column(provider: str) -> str:
    if provider not in OAUTH_PROVIDERS:
        raise ValidationError(f"Unknown OAuth provider: {provider}")
    return f"{provider}_id"


def normalize_email(email: str) -> str:
    """
    Canonical spelling used for storage and lookup (domain lowercased).

    Raises:
        ValidationError: not a syntactically valid address
    """
    try:
        return validate_email(email.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email address: {e}") from e


async def find_by_email(db: AsyncSession, email: str) -> Optional[User]:
    try:
        email = normalize_email(email)
    except ValidationError:
        # no stored address can match
        return None
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    email: str,
    display_name: str,
    password: Optional[str] = None,
    provider: Optional[str] = None,
    provider_id: Optional[str] = None,
    role: str = "user",
) -> User:
    """
    Create a user from either a password or an OAuth identity.

    Args:
        db: Database session (committed on success)
        email: Login email, unique across all signup methods
        display_name: Name shown in the UI
        password: Plaintext password for password signups
        provider/provider_id: OAuth identity for provider signups
        role: "user" or "admin"

    Raises:
        DuplicateEmail: email already registered (also on a lost insert race)
        ValidationError: malformed email, or neither a password nor a
            provider identity given
    """
    if password is None and not (provider and provider_id):
        raise ValidationError("A password or an OAuth identity is required")

    email = normalize_email(email)

    if await find_by_email(db, email) is not None:
        raise DuplicateEmail()

    user = User(email=email, display_name=display_name, role=role, custom_statuses=[])
    if password is not None:
        user.password_hash = await run_in_threadpool(hash_password, password)
    if provider and provider_id:
        setattr(user, provider_column(provider), provider_id)

    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateEmail()
    await db.refresh(user)

    logger.info(f"Created user {user.id} via {provider or 'password'}")
    return user


async def link_provider(db: AsyncSession, user: User, provider: str, provider_id: str) -> User:
    """Record an OAuth id on an existing account. The password is left alone."""
    column = provider_column(provider)
    if getattr(user, column) == provider_id:
        return user
    if getattr(user, column) is None:
        setattr(user, column, provider_id)
        await db.commit()
        await db.refresh(user)
        logger.info(f"Linked {provider} identity to user {user.id}")
    return user
