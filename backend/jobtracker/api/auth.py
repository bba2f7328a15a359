import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.auth import (
    AuthContext,
    SessionTokenIssuer,
    enforce_csrf,
    get_current_user,
    get_issuer,
    require_csrf,
)
from jobtracker.database import get_db
from jobtracker.models import User
from jobtracker.schemas import (
    CsrfTokenResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
)
from jobtracker.services import identity

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, db: AsyncSession = Depends(get_db)):
    user = await identity.create_user(
        db,
        email=request.email,
        display_name=request.display_name,
        password=request.password,
    )
    return RegisterResponse(id=user.id, name=user.display_name, email=user.email, role=user.role)


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    issuer: SessionTokenIssuer = Depends(get_issuer),
):
    enforce_csrf(request, await issuer.authenticate(request))
    _, body = await issuer.login(db, credentials.email, credentials.password, request, response)
    return LoginResponse(message="Logged in successfully", **body)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    issuer: SessionTokenIssuer = Depends(get_issuer),
):
    ctx = await issuer.authenticate(request)
    if ctx is not None and ctx.is_authenticated:
        enforce_csrf(request, ctx)
    await issuer.logout(ctx, response)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return UserResponse.model_validate(user)


@router.delete("/me", response_model=MessageResponse)
async def delete_account(
    response: Response,
    ctx: AuthContext = Depends(require_csrf),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    issuer: SessionTokenIssuer = Depends(get_issuer),
):
    # Jobs, resumes and cover letters go with the user (ON DELETE CASCADE)
    await db.delete(user)
    await db.commit()
    await issuer.logout(ctx, response)
    logger.info(f"Deleted account {ctx.user_id}")
    return MessageResponse(message="Account deleted")


@router.get("/csrf-token", response_model=CsrfTokenResponse)
async def csrf_token(
    request: Request,
    response: Response,
    issuer: SessionTokenIssuer = Depends(get_issuer),
):
    return CsrfTokenResponse(csrfToken=await issuer.csrf_token_for(request, response))
