from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.auth import get_current_user
from jobtracker.database import get_db
from jobtracker.models import CoverLetter, Job, Resume, User
from jobtracker.services.status import BASE_STATUSES, StatusCatalog, is_terminal

router = APIRouter()


@router.get("")
async def get_stats(
    deadline_days: int = Query(7, ge=1, le=90),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    owned = Job.user_id == user.id

    total_result = await db.execute(select(func.count(Job.id)).where(owned))
    total_jobs = total_result.scalar() or 0

    # Single GROUP BY; spellings are folded onto the catalog's labels
    status_result = await db.execute(
        select(Job.status, func.count(Job.id)).where(owned).group_by(Job.status)
    )
    catalog = StatusCatalog(user.custom_statuses or [])
    jobs_by_status = {label: 0 for label in catalog.labels}
    for label, count in status_result.all():
        key = catalog.find(label) or label
        jobs_by_status[key] = jobs_by_status.get(key, 0) + count

    now = datetime.now(timezone.utc).replace(tzinfo=None)
    deadline_result = await db.execute(
        select(Job.status).where(
            owned,
            Job.deadline.is_not(None),
            Job.deadline >= now,
            Job.deadline <= now + timedelta(days=deadline_days),
        )
    )
    upcoming_deadlines = sum(1 for (label,) in deadline_result.all() if not is_terminal(label))

    resume_result = await db.execute(select(func.count(Resume.id)).where(Resume.user_id == user.id))
    letter_result = await db.execute(select(func.count(CoverLetter.id)).where(CoverLetter.user_id == user.id))

    return {
        "total_jobs": total_jobs,
        "jobs_by_status": jobs_by_status,
        "active_jobs": total_jobs - sum(
            count for label, count in jobs_by_status.items() if is_terminal(label)
        ),
        "applied_jobs": jobs_by_status[BASE_STATUSES[1]],
        "interviewing_jobs": jobs_by_status[BASE_STATUSES[2]],
        "upcoming_deadlines": upcoming_deadlines,
        "total_resumes": resume_result.scalar() or 0,
        "total_cover_letters": letter_result.scalar() or 0,
    }
