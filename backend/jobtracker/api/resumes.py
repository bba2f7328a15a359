import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.auth import AuthContext, require_auth, require_csrf
from jobtracker.database import get_db
from jobtracker.models import Job, Resume
from jobtracker.schemas import ResumeCreate, ResumeResponse, ResumeUpdate
from jobtracker.services.ownership import ensure_owned, get_owned

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[ResumeResponse])
async def list_resumes(
    active_only: bool = Query(False),
    ctx: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    query = select(Resume).where(Resume.user_id == ctx.user_id)
    if active_only:
        query = query.where(Resume.is_active.is_(True))
    result = await db.execute(query.order_by(Resume.updated_at.desc(), Resume.id.desc()))
    return result.scalars().all()


@router.post("", response_model=ResumeResponse, status_code=status.HTTP_201_CREATED)
async def create_resume(
    payload: ResumeCreate,
    ctx: AuthContext = Depends(require_csrf),
    db: AsyncSession = Depends(get_db),
):
    await ensure_owned(db, Job, payload.job_id, ctx.user_id, "Job")

    resume = Resume(user_id=ctx.user_id, **payload.model_dump())
    db.add(resume)
    await db.commit()
    await db.refresh(resume)
    logger.info(f"User {ctx.user_id} created resume {resume.id}")
    return resume


@router.get("/{resume_id}", response_model=ResumeResponse)
async def get_resume(
    resume_id: int,
    ctx: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return await get_owned(db, Resume, resume_id, ctx.user_id, "Resume")


@router.api_route("/{resume_id}", methods=["PUT", "PATCH"], response_model=ResumeResponse)
async def update_resume(
    resume_id: int,
    update: ResumeUpdate,
    ctx: AuthContext = Depends(require_csrf),
    db: AsyncSession = Depends(get_db),
):
    resume = await get_owned(db, Resume, resume_id, ctx.user_id, "Resume")

    update_data = update.model_dump(exclude_unset=True)
    if "job_id" in update_data:
        await ensure_owned(db, Job, update_data["job_id"], ctx.user_id, "Job")

    for field, value in update_data.items():
        if value is None and field not in ("summary", "job_id"):
            continue
        setattr(resume, field, value)

    await db.commit()
    await db.refresh(resume)
    return resume


@router.delete("/{resume_id}")
async def delete_resume(
    resume_id: int,
    ctx: AuthContext = Depends(require_csrf),
    db: AsyncSession = Depends(get_db),
):
    resume = await get_owned(db, Resume, resume_id, ctx.user_id, "Resume")
    await db.delete(resume)
    await db.commit()
    logger.info(f"User {ctx.user_id} deleted resume {resume_id}")
    return {"message": "Resume deleted successfully"}
