from fastapi import APIRouter, Depends

from jobtracker.auth import AuthContext, require_csrf
from jobtracker.schemas.optimize import (
    GenerateCoverLetterRequest,
    GenerateCoverLetterResponse,
    ImproveResumeRequest,
    ImproveResumeResponse,
    OptimizeCoverLetterRequest,
    OptimizeCoverLetterResponse,
    OptimizeResumeSectionRequest,
    OptimizeResumeSectionResponse,
)
from jobtracker.services.optimizer import ContentOptimizer, get_optimizer

router = APIRouter()


@router.post("/resume-section", response_model=OptimizeResumeSectionResponse)
async def optimize_resume_section(
    payload: OptimizeResumeSectionRequest,
    _: AuthContext = Depends(require_csrf),
    optimizer: ContentOptimizer = Depends(get_optimizer),
):
    content = await optimizer.optimize_resume_section(
        payload.section_title, payload.section_content, payload.job_description
    )
    return OptimizeResumeSectionResponse(optimized_content=content)


@router.post("/cover-letter", response_model=OptimizeCoverLetterResponse)
async def optimize_cover_letter(
    payload: OptimizeCoverLetterRequest,
    _: AuthContext = Depends(require_csrf),
    optimizer: ContentOptimizer = Depends(get_optimizer),
):
    content = await optimizer.optimize_cover_letter(
        payload.current_cover_letter, payload.job_description, payload.resume_snippet
    )
    return OptimizeCoverLetterResponse(optimized_cover_letter=content)


@router.post("/generate-cover-letter", response_model=GenerateCoverLetterResponse)
async def generate_cover_letter(
    payload: GenerateCoverLetterRequest,
    _: AuthContext = Depends(require_csrf),
    optimizer: ContentOptimizer = Depends(get_optimizer),
):
    content = await optimizer.generate_cover_letter(payload.resume, payload.job_description)
    return GenerateCoverLetterResponse(cover_letter=content)


@router.post("/improve-resume", response_model=ImproveResumeResponse)
async def improve_resume(
    payload: ImproveResumeRequest,
    _: AuthContext = Depends(require_csrf),
    optimizer: ContentOptimizer = Depends(get_optimizer),
):
    content = await optimizer.improve_resume(payload.resume_text, payload.job_description)
    return ImproveResumeResponse(improved_resume=content)
