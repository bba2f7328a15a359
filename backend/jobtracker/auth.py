"""
Session/Token Issuer - password and OAuth login, logout, request auth

One issuer, two transports:

    CookieSessionTransport  opaque "sid" cookie → server-side record
                            {user_id, role, csrf_token} in the key-value store
    TokenTransport          signed JWT {sub, email, role, csrf, jti, exp},
                            sent as the httpOnly "token" cookie and accepted
                            from "Authorization: Bearer ..."

`auth_transport` picks the transport used by password login. OAuth
callbacks always get a token. Incoming requests are authenticated in the
order bearer header, session cookie, token cookie.

Session lifecycle:
    Anonymous → Authenticating → Authenticated → Anonymous (logout/expiry)

Anonymous visitors who ask for a CSRF token get a user-less session
record, so the login POST itself can be CSRF-checked. Login replaces it
with a fresh session id and CSRF token.

FastAPI dependencies:
    require_auth       → AuthContext, 401 when not logged in
    require_csrf       → AuthContext, plus 403 on CSRF mismatch for
                         cookie-authenticated unsafe methods
    get_current_user   → User row
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.config import Settings, get_settings
from jobtracker.database import get_db
from jobtracker.errors import CsrfMismatch, InvalidCredentials, NotLoggedIn
from jobtracker.middleware.metrics import record_auth_event
from jobtracker.models import User
from jobtracker.services import csrf, identity
from jobtracker.services.store import KeyValueStore, get_store
from jobtracker.services.tokens import create_token, decode_token, seconds_remaining

logger = logging.getLogger(__name__)

SESSION_COOKIE = "sid"
TOKEN_COOKIE = "token"


@dataclass
class AuthContext:
    """
    Who is making the request and how they proved it.

    Attributes:
        user_id: Authenticated user, None for an anonymous session
        role: User role at login time
        csrf_token: Token the client must echo on unsafe requests
        via: "session", "token_cookie" or "bearer"
        credential_id: Session id or token jti
        expires_in: Seconds until the credential expires
    """

    user_id: Optional[int]
    role: Optional[str]
    csrf_token: Optional[str]
    via: str
    credential_id: str
    expires_in: int = 0
    email: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def csrf_exempt(self) -> bool:
        # Browsers never attach an Authorization header on their own
        return self.via == "bearer"


def _set_cookie(response: Response, key: str, value: str, max_age: int, secure: bool) -> None:
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=secure,
        path="/",
    )


def _clear_cookie(response: Response, key: str, secure: bool) -> None:
    response.delete_cookie(key=key, path="/", httponly=True, samesite="lax", secure=secure)


class AuthTransport(ABC):
    """Base class for the ways a login is handed to the client."""

    name: str = "unknown"

    def __init__(self, store: KeyValueStore, ttl_seconds: int, secure: bool):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.secure = secure

    @abstractmethod
    async def issue(self, user: User, response: Response) -> Tuple[AuthContext, Dict[str, Any]]:
        """Create a credential for `user`; return it plus extra response body fields."""
        pass

    @abstractmethod
    async def revoke(self, ctx: AuthContext) -> None:
        pass

    @abstractmethod
    def clear(self, response: Response) -> None:
        pass


class CookieSessionTransport(AuthTransport):
    name = "session"

    @staticmethod
    def _key(sid: str) -> str:
        return f"session:{sid}"

    async def _create(
        self,
        response: Response,
        user_id: Optional[int],
        role: Optional[str],
    ) -> AuthContext:
        sid = csrf.issue_token()
        csrf_token = csrf.issue_token()
        await self.store.set_json(
            self._key(sid),
            {
                "user_id": user_id,
                "role": role,
                "csrf_token": csrf_token,
                "created_at": datetime.now(timezone.utc).isoformat(),
            },
            ttl=self.ttl_seconds,
        )
        _set_cookie(response, SESSION_COOKIE, sid, self.ttl_seconds, self.secure)
        return AuthContext(
            user_id=user_id,
            role=role,
            csrf_token=csrf_token,
            via="session",
            credential_id=sid,
            expires_in=self.ttl_seconds,
        )

    async def issue(self, user: User, response: Response) -> Tuple[AuthContext, Dict[str, Any]]:
        ctx = await self._create(response, user.id, user.role)
        ctx.email = user.email
        return ctx, {}

    async def start_anonymous(self, response: Response) -> AuthContext:
        return await self._create(response, None, None)

    async def from_cookie(self, request: Request) -> Optional[AuthContext]:
        sid = request.cookies.get(SESSION_COOKIE)
        if not sid:
            return None
        record = await self.store.get_json(self._key(sid))
        if record is None:
            return None
        return AuthContext(
            user_id=record.get("user_id"),
            role=record.get("role"),
            csrf_token=record.get("csrf_token"),
            via="session",
            credential_id=sid,
        )

    async def revoke(self, ctx: AuthContext) -> None:
        await self.store.delete(self._key(ctx.credential_id))

    def clear(self, response: Response) -> None:
        _clear_cookie(response, SESSION_COOKIE, self.secure)


class TokenTransport(AuthTransport):
    name = "token"

    @staticmethod
    def _revoked_key(jti: str) -> str:
        return f"revoked:{jti}"

    async def issue(self, user: User, response: Response) -> Tuple[AuthContext, Dict[str, Any]]:
        csrf_token = csrf.issue_token()
        token = create_token(
            {"sub": str(user.id), "email": user.email, "role": user.role, "csrf": csrf_token},
            expires_in=timedelta(seconds=self.ttl_seconds),
        )
        _set_cookie(response, TOKEN_COOKIE, token, self.ttl_seconds, self.secure)
        claims = decode_token(token) or {}
        ctx = AuthContext(
            user_id=user.id,
            role=user.role,
            csrf_token=csrf_token,
            via="token_cookie",
            credential_id=claims.get("jti", ""),
            expires_in=self.ttl_seconds,
            email=user.email,
        )
        return ctx, {"access_token": token, "token_type": "bearer"}

    async def _context(self, token: str, via: str) -> Optional[AuthContext]:
        claims = decode_token(token)
        if not claims or "sub" not in claims:
            return None
        jti = claims.get("jti", "")
        if jti and await self.store.get(self._revoked_key(jti)) is not None:
            return None
        try:
            user_id = int(claims["sub"])
        except (TypeError, ValueError):
            return None
        return AuthContext(
            user_id=user_id,
            role=claims.get("role"),
            csrf_token=claims.get("csrf"),
            via=via,
            credential_id=jti,
            expires_in=seconds_remaining(claims),
            email=claims.get("email"),
        )

    async def from_header(self, request: Request) -> Optional[AuthContext]:
        header = request.headers.get("authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return None
        return await self._context(token.strip(), via="bearer")

    async def from_cookie(self, request: Request) -> Optional[AuthContext]:
        token = request.cookies.get(TOKEN_COOKIE)
        if not token:
            return None
        return await self._context(token, via="token_cookie")

    async def revoke(self, ctx: AuthContext) -> None:
        if ctx.credential_id and ctx.expires_in > 0:
            await self.store.set(self._revoked_key(ctx.credential_id), "1", ttl=ctx.expires_in)

    def clear(self, response: Response) -> None:
        _clear_cookie(response, TOKEN_COOKIE, self.secure)


class SessionTokenIssuer:
    """
    Entry point for every login, logout and request-authentication decision.

    Attributes:
        sessions: Server-side session transport
        tokens: Signed token transport
        login_transport: Transport used by password login
    """

    def __init__(self, store: KeyValueStore, settings: Settings):
        secure = settings.is_production
        self.sessions = CookieSessionTransport(
            store, ttl_seconds=settings.session_ttl_days * 86400, secure=secure
        )
        self.tokens = TokenTransport(
            store, ttl_seconds=settings.token_expire_days * 86400, secure=secure
        )
        self.login_transport: AuthTransport = (
            self.tokens if settings.auth_transport == "token" else self.sessions
        )

    async def authenticate(self, request: Request) -> Optional[AuthContext]:
        """
        Resolve the request's credentials.

        Returns:
            AuthContext (possibly anonymous) or None when nothing valid is sent
        """
        ctx = await self.tokens.from_header(request)
        if ctx is not None:
            return ctx

        session_ctx = await self.sessions.from_cookie(request)
        if session_ctx is not None and session_ctx.is_authenticated:
            return session_ctx

        token_ctx = await self.tokens.from_cookie(request)
        return token_ctx or session_ctx

    async def login(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        request: Request,
        response: Response,
    ) -> Tuple[AuthContext, Dict[str, Any]]:
        """
        Password login.

        Raises:
            InvalidCredentials: unknown email or wrong password (same error)
        """
        user = await identity.find_by_email(db, email)
        if not await identity.check_password(user, password):
            record_auth_event("login", "failure")
            logger.info("Login failed: invalid credentials")
            raise InvalidCredentials()

        previous = await self.sessions.from_cookie(request)
        if previous is not None:
            await self.sessions.revoke(previous)
            if self.login_transport is not self.sessions:
                self.sessions.clear(response)

        ctx, body = await self.login_transport.issue(user, response)
        record_auth_event("login", "success")
        logger.info(f"User {user.id} logged in via {self.login_transport.name}")
        return ctx, {"csrfToken": ctx.csrf_token, **body}

    async def logout(self, ctx: Optional[AuthContext], response: Response) -> None:
        """Destroy whatever credential `ctx` refers to. Safe to call with no session."""
        if ctx is not None:
            if ctx.via == "session":
                await self.sessions.revoke(ctx)
            else:
                await self.tokens.revoke(ctx)
            if ctx.is_authenticated:
                record_auth_event("logout", "success")
                logger.info(f"User {ctx.user_id} logged out")
        self.sessions.clear(response)
        self.tokens.clear(response)

    async def csrf_token_for(self, request: Request, response: Response) -> str:
        ctx = await self.authenticate(request)
        if ctx is None or not ctx.csrf_token:
            ctx = await self.sessions.start_anonymous(response)
        return ctx.csrf_token

    async def issue_oauth_token(self, user: User, response: Response) -> AuthContext:
        ctx, _ = await self.tokens.issue(user, response)
        record_auth_event("oauth_login", "success")
        return ctx


# ==================== FastAPI Dependencies ====================

def get_session_store() -> KeyValueStore:
    return get_store()


def get_issuer(store: KeyValueStore = Depends(get_session_store)) -> SessionTokenIssuer:
    return SessionTokenIssuer(store, get_settings())


async def get_auth_context(
    request: Request,
    issuer: SessionTokenIssuer = Depends(get_issuer),
) -> Optional[AuthContext]:
    return await issuer.authenticate(request)


def enforce_csrf(request: Request, ctx: Optional[AuthContext]) -> None:
    """Reject unsafe cookie-authenticated requests without a matching X-CSRF-Token."""
    if request.method in csrf.SAFE_METHODS:
        return
    if ctx is not None and ctx.csrf_exempt:
        return
    expected = ctx.csrf_token if ctx is not None else None
    if not csrf.validate(expected, request.headers.get(csrf.CSRF_HEADER)):
        record_auth_event("csrf", "failure")
        logger.warning(f"CSRF token mismatch on {request.method} {request.url.path}")
        raise CsrfMismatch()


async def require_auth(ctx: Optional[AuthContext] = Depends(get_auth_context)) -> AuthContext:
    if ctx is None or not ctx.is_authenticated:
        raise NotLoggedIn()
    return ctx


async def require_csrf(
    request: Request,
    ctx: AuthContext = Depends(require_auth),
) -> AuthContext:
    enforce_csrf(request, ctx)
    return ctx


async def get_current_user(
    ctx: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await identity.get_by_id(db, ctx.user_id)
    if user is None:
        raise NotLoggedIn()
    return user
