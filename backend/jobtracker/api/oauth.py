"""
OAuth login routes

    GET  /api/auth/{provider}            redirect to the provider
    GET  /api/auth/{provider}/callback   Google (query response mode)
    POST /api/auth/{provider}/callback   Apple, Microsoft (form_post)

A successful callback sets the signed "token" cookie and redirects to the
frontend. Any failure answers 401 without creating a session.
"""

import logging
from typing import Mapping, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.auth import SessionTokenIssuer, get_issuer
from jobtracker.config import get_settings
from jobtracker.database import get_db
from jobtracker.errors import AuthenticationFailed
from jobtracker.middleware.metrics import record_auth_event
from jobtracker.services import oauth

logger = logging.getLogger(__name__)

router = APIRouter()


def get_oauth_providers():
    return oauth.build_providers()


@router.get("/{provider}")
async def start_login(provider: str, providers=Depends(get_oauth_providers)):
    client = oauth.get_provider(provider, providers)
    url = client.authorization_url(oauth.create_state(provider), oauth.redirect_uri(provider))
    return RedirectResponse(url, status_code=302)


async def _complete_login(
    provider: str,
    params: Mapping[str, str],
    providers,
    db: AsyncSession,
    issuer: SessionTokenIssuer,
) -> RedirectResponse:
    client = oauth.get_provider(provider, providers)
    try:
        if params.get("error"):
            raise AuthenticationFailed(f"{provider} returned error {params.get('error')}")
        oauth.verify_state(provider, params.get("state"))
        code: Optional[str] = params.get("code")
        if not code:
            raise AuthenticationFailed(f"{provider} callback without code")
        profile = await client.exchange_code(code, oauth.redirect_uri(provider), form=params)
        user = await oauth.handle_callback(db, profile)
    except AuthenticationFailed as e:
        record_auth_event("oauth_login", "failure")
        logger.warning(f"OAuth login via {provider} failed: {e.message}")
        raise AuthenticationFailed()

    response = RedirectResponse(get_settings().frontend_url, status_code=303)
    await issuer.issue_oauth_token(user, response)
    logger.info(f"User {user.id} authenticated with {provider}")
    return response


@router.get("/{provider}/callback")
async def callback_get(
    provider: str,
    request: Request,
    providers=Depends(get_oauth_providers),
    db: AsyncSession = Depends(get_db),
    issuer: SessionTokenIssuer = Depends(get_issuer),
):
    return await _complete_login(provider, request.query_params, providers, db, issuer)


@router.post("/{provider}/callback")
async def callback_post(
    provider: str,
    request: Request,
    providers=Depends(get_oauth_providers),
    db: AsyncSession = Depends(get_db),
    issuer: SessionTokenIssuer = Depends(get_issuer),
):
    form = await request.form()
    params = {key: value for key, value in form.items() if isinstance(value, str)}
    return await _complete_login(provider, params, providers, db, issuer)
