import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.auth import AuthContext, require_auth, require_csrf
from jobtracker.database import get_db
from jobtracker.models import CoverLetter, Job, Resume
from jobtracker.schemas import CoverLetterCreate, CoverLetterResponse, CoverLetterUpdate
from jobtracker.services.ownership import ensure_owned, get_owned

logger = logging.getLogger(__name__)

router = APIRouter()

# Snapshot fields a PATCH may clear by sending null
NULLABLE_FIELDS = {"job_id", "resume_id", "job_title", "company_name", "job_description", "resume_snippet"}


async def check_links(db: AsyncSession, user_id: int, job_id: Optional[int], resume_id: Optional[int]) -> None:
    await ensure_owned(db, Job, job_id, user_id, "Job")
    await ensure_owned(db, Resume, resume_id, user_id, "Resume")


@router.get("", response_model=list[CoverLetterResponse])
async def list_cover_letters(
    job_id: Optional[int] = Query(None),
    ctx: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    query = select(CoverLetter).where(CoverLetter.user_id == ctx.user_id)
    if job_id is not None:
        query = query.where(CoverLetter.job_id == job_id)
    result = await db.execute(query.order_by(CoverLetter.updated_at.desc(), CoverLetter.id.desc()))
    return result.scalars().all()


@router.post("", response_model=CoverLetterResponse, status_code=status.HTTP_201_CREATED)
async def create_cover_letter(
    payload: CoverLetterCreate,
    ctx: AuthContext = Depends(require_csrf),
    db: AsyncSession = Depends(get_db),
):
    await check_links(db, ctx.user_id, payload.job_id, payload.resume_id)

    letter = CoverLetter(user_id=ctx.user_id, **payload.model_dump())
    db.add(letter)
    await db.commit()
    await db.refresh(letter)
    logger.info(f"User {ctx.user_id} created cover letter {letter.id}")
    return letter


@router.get("/{letter_id}", response_model=CoverLetterResponse)
async def get_cover_letter(
    letter_id: int,
    ctx: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return await get_owned(db, CoverLetter, letter_id, ctx.user_id, "Cover letter")


@router.api_route("/{letter_id}", methods=["PUT", "PATCH"], response_model=CoverLetterResponse)
async def update_cover_letter(
    letter_id: int,
    update: CoverLetterUpdate,
    ctx: AuthContext = Depends(require_csrf),
    db: AsyncSession = Depends(get_db),
):
    letter = await get_owned(db, CoverLetter, letter_id, ctx.user_id, "Cover letter")

    update_data = update.model_dump(exclude_unset=True)
    await check_links(db, ctx.user_id, update_data.get("job_id"), update_data.get("resume_id"))

    for field, value in update_data.items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        setattr(letter, field, value)

    await db.commit()
    await db.refresh(letter)
    return letter


@router.delete("/{letter_id}")
async def delete_cover_letter(
    letter_id: int,
    ctx: AuthContext = Depends(require_csrf),
    db: AsyncSession = Depends(get_db),
):
    letter = await get_owned(db, CoverLetter, letter_id, ctx.user_id, "Cover letter")
    await db.delete(letter)
    await db.commit()
    logger.info(f"User {ctx.user_id} deleted cover letter {letter_id}")
    return {"message": "Cover letter deleted successfully"}
