from fastapi import APIRouter
from jobtracker.api import auth, cover_letters, jobs, oauth, optimize, resumes, stats

api_router = APIRouter(prefix="/api")
# auth before oauth so /me and /csrf-token are not taken as a provider name
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(oauth.router, prefix="/auth", tags=["oauth"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
api_router.include_router(resumes.router, prefix="/resumes", tags=["resumes"])
api_router.include_router(cover_letters.router, prefix="/cover-letters", tags=["cover-letters"])
api_router.include_router(stats.router, prefix="/stats", tags=["stats"])
api_router.include_router(optimize.router, prefix="/optimize", tags=["optimize"])
