"""
Ownership checks for user-owned records

Every single-record read and every mutation of a Job, Resume or
CoverLetter goes through get_owned(). A record owned by someone else is
reported exactly like a missing one (404), so ids cannot be probed.
"""

from typing import Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.errors import NotFoundError

T = TypeVar("T")


async def get_owned(
    db: AsyncSession,
    model: Type[T],
    record_id: int,
    user_id: int,
    label: Optional[str] = None,
) -> T:
    result = await db.execute(
        select(model).where(model.id == record_id, model.user_id == user_id)
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFoundError(f"{label or model.__name__} not found")
    return record


async def ensure_owned(
    db: AsyncSession,
    model: Type[T],
    record_id: Optional[int],
    user_id: int,
    label: Optional[str] = None,
) -> None:
    """get_owned() for optional foreign keys; None always passes."""
    if record_id is None:
        return
    await get_owned(db, model, record_id, user_id, label)
