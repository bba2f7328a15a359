import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.auth import AuthContext, get_current_user, require_auth, require_csrf
from jobtracker.config import get_settings
from jobtracker.database import get_db
from jobtracker.errors import StatusLimitExceeded, TerminalStateViolation, ValidationError
from jobtracker.middleware.metrics import record_status_transition
from jobtracker.models import Job, User
from jobtracker.schemas import (
    AddStatusRequest,
    AddStatusResponse,
    JobCreate,
    JobListResponse,
    JobResponse,
    JobUpdate,
    StatusCatalogResponse,
)
from jobtracker.services.ownership import get_owned
from jobtracker.services.status import StatusCatalog, available_statuses, initial_statuses

logger = logging.getLogger(__name__)

router = APIRouter()

SORTABLE_FIELDS = {
    "created_at": Job.created_at,
    "application_date": Job.application_date,
    "deadline": Job.deadline,
    "title": Job.title,
    "company": Job.company,
    "salary_min": Job.salary_min,
}


def catalog_for(user: User) -> StatusCatalog:
    return StatusCatalog(user.custom_statuses or [], max_custom=get_settings().max_custom_statuses)


def resolve_status(
    catalog: StatusCatalog,
    current: Optional[str],
    requested: str,
    is_new_record: bool,
    job_id: Optional[int] = None,
) -> tuple[str, bool]:
    try:
        label, created = catalog.resolve_for(current, requested, is_new_record)
    except TerminalStateViolation:
        record_status_transition("terminal_violation")
        logger.info(f"Rejected status change on job {job_id}: {current!r} -> {requested!r}")
        raise
    except StatusLimitExceeded:
        record_status_transition("limit_exceeded")
        raise
    record_status_transition("accepted")
    return label, created


async def save_custom_label(db: AsyncSession, user: User, label: str) -> tuple[StatusCatalog, str]:
    """
    Write a new custom label into the user's stored catalog.

    The stored list is re-read (row locked where the database supports it)
    and the label merged into it, so a label saved by another request since
    `user` was loaded is kept. Returns the merged catalog and the spelling
    to store on the job.
    """
    await db.refresh(user, attribute_names=["custom_statuses"], with_for_update=True)
    catalog = catalog_for(user)
    selected, created = catalog.add(label)
    if created:
        user.custom_statuses = catalog.custom
    return catalog, selected


def to_response(job: Job, catalog: StatusCatalog) -> JobResponse:
    response = JobResponse.model_validate(job)
    response.available_statuses = available_statuses(job.status, catalog.labels)
    return response


@router.get("", response_model=JobListResponse)
async def list_jobs(
    status: Optional[str] = Query(None),
    company: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    ctx: AuthContext = Depends(require_auth),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if sort_by not in SORTABLE_FIELDS:
        raise ValidationError(f"sort_by must be one of: {', '.join(SORTABLE_FIELDS)}")

    filters = [Job.user_id == ctx.user_id]

    if status and status != "All Statuses":
        filters.append(func.lower(Job.status) == status.strip().lower())

    if company:
        filters.append(Job.company.ilike(f"%{company}%"))

    if search and search.strip():
        term = f"%{search.strip()}%"
        filters.append(or_(
            Job.title.ilike(term),
            Job.company.ilike(term),
            Job.location.ilike(term),
            Job.description.ilike(term),
            Job.notes.ilike(term),
            Job.role_details.ilike(term),
        ))

    total_result = await db.execute(select(func.count(Job.id)).where(*filters))
    total = total_result.scalar() or 0

    column = SORTABLE_FIELDS[sort_by]
    order = column.asc() if sort_order == "asc" else column.desc()
    query = (
        select(Job)
        .where(*filters)
        .order_by(order, Job.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    result = await db.execute(query)
    jobs = result.scalars().all()

    catalog = catalog_for(user)
    return JobListResponse(
        jobs=[to_response(job, catalog) for job in jobs],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_job(
    payload: JobCreate,
    ctx: AuthContext = Depends(require_csrf),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    catalog = catalog_for(user)
    label, created = resolve_status(catalog, None, payload.status, is_new_record=True)

    if created:
        catalog, label = await save_custom_label(db, user, label)

    job = Job(user_id=ctx.user_id, **payload.model_dump(exclude={"status"}))
    job.status = label
    db.add(job)

    await db.commit()
    await db.refresh(job)
    logger.info(f"User {ctx.user_id} created job {job.id} as {label!r}")
    return to_response(job, catalog)


@router.get("/statuses", response_model=StatusCatalogResponse)
async def get_statuses(user: User = Depends(get_current_user)):
    catalog = catalog_for(user)
    return StatusCatalogResponse(
        statuses=catalog.labels,
        custom=catalog.custom,
        initial=initial_statuses(catalog.labels),
        max_custom=catalog.max_custom,
    )


@router.post("/statuses", response_model=AddStatusResponse)
async def add_status(
    payload: AddStatusRequest,
    ctx: AuthContext = Depends(require_csrf),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    catalog = catalog_for(user)
    selected, created = catalog.add(payload.label)
    if created:
        catalog, selected = await save_custom_label(db, user, selected)
        await db.commit()
        logger.info(f"User {ctx.user_id} added custom status {selected!r}")
    return AddStatusResponse(selected=selected, created=created, statuses=catalog.labels)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: int,
    ctx: AuthContext = Depends(require_auth),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    job = await get_owned(db, Job, job_id, ctx.user_id, "Job")
    return to_response(job, catalog_for(user))


@router.api_route("/{job_id}", methods=["PUT", "PATCH"], response_model=JobResponse)
async def update_job(
    job_id: int,
    update: JobUpdate,
    ctx: AuthContext = Depends(require_csrf),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    job = await get_owned(db, Job, job_id, ctx.user_id, "Job")
    catalog = catalog_for(user)

    update_data = update.model_dump(exclude_unset=True)

    salary_min = update_data.get("salary_min", job.salary_min)
    salary_max = update_data.get("salary_max", job.salary_max)
    if salary_min is not None and salary_max is not None and salary_min > salary_max:
        raise ValidationError("salary_min cannot be greater than salary_max")

    created = False
    if "status" in update_data:
        update_data["status"], created = resolve_status(
            catalog, job.status, update_data["status"], is_new_record=False, job_id=job.id
        )

    if created:
        catalog, label = await save_custom_label(db, user, update_data["status"])
        update_data["status"] = label

    for field, value in update_data.items():
        setattr(job, field, value)

    await db.commit()
    await db.refresh(job)
    return to_response(job, catalog)


@router.delete("/{job_id}")
async def delete_job(
    job_id: int,
    ctx: AuthContext = Depends(require_csrf),
    db: AsyncSession = Depends(get_db),
):
    job = await get_owned(db, Job, job_id, ctx.user_id, "Job")
    await db.delete(job)
    await db.commit()
    logger.info(f"User {ctx.user_id} deleted job {job_id}")
    return {"message": "Job deleted successfully"}
