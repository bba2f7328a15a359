"""
Job Tracker API - Main Application Entry Point

This module initializes the FastAPI application with:
- Logging configuration
- Database schema initialization
- CORS middleware for frontend communication
- Prometheus metrics middleware
- Central error handlers
- API router registration

Architecture:
    FastAPI App
    ├── Lifespan Management (startup/shutdown)
    ├── CORS Middleware (cors_origins)
    ├── Prometheus Middleware (/metrics)
    └── API Router (/api)
        ├── /auth - Registration, login, sessions, OAuth
        ├── /jobs - Job CRUD and status catalog
        ├── /resumes - Resume CRUD
        ├── /cover-letters - Cover letter CRUD
        ├── /stats - Dashboard statistics
        └── /optimize - AI content optimization
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobtracker.api import api_router
from jobtracker.config import get_settings
from jobtracker.database import init_db
from jobtracker.errors import AppError
from jobtracker.middleware.metrics import setup_metrics
from jobtracker.services.store import close_store

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle events.

    Startup:
        1. Initialize database tables

    Shutdown:
        1. Close the session store connection

    Yields:
        Control to the application during its runtime
    """
    await init_db()
    logger.info(f"Job Tracker API started ({settings.environment})")
    yield
    await close_store()


app = FastAPI(
    title="Job Tracker API",
    description="Job application tracking API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_metrics(app)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(location) or None, "message": error.get("msg", "Invalid value")})
    return JSONResponse(status_code=400, content={"detail": "Validation failed", "errors": errors})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(api_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
