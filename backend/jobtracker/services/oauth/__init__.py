"""
OAuth login providers and callback reconciliation

Each provider implements OAuthProvider.exchange_code(); the callback
route resolves the resulting ProviderProfile to a single user row by
email through handle_callback().
"""

import logging
import secrets
from datetime import timedelta
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.config import Settings, get_settings
from jobtracker.errors import AuthenticationFailed, NotFoundError, ValidationError
from jobtracker.models import User
from jobtracker.services import identity
from jobtracker.services.oauth.apple import AppleProvider
from jobtracker.services.oauth.base import OAuthProvider, ProviderProfile
from jobtracker.services.oauth.google import GoogleProvider
from jobtracker.services.oauth.microsoft import MicrosoftProvider
from jobtracker.services.tokens import create_token, decode_token

logger = logging.getLogger(__name__)

STATE_TTL = timedelta(minutes=10)


def build_providers(settings: Optional[Settings] = None) -> Dict[str, OAuthProvider]:
    settings = settings or get_settings()
    return {
        "google": GoogleProvider(settings.google_client_id, settings.google_client_secret),
        "microsoft": MicrosoftProvider(
            settings.microsoft_client_id,
            settings.microsoft_client_secret,
            tenant=settings.microsoft_tenant,
        ),
        "apple": AppleProvider(
            settings.apple_client_id,
            team_id=settings.apple_team_id,
            key_id=settings.apple_key_id,
            private_key_path=settings.apple_private_key_path,
        ),
    }


def get_provider(name: str, providers: Optional[Dict[str, OAuthProvider]] = None) -> OAuthProvider:
    providers = providers if providers is not None else build_providers()
    provider = providers.get(name)
    if provider is None or not provider.configured:
        raise NotFoundError("Unknown OAuth provider")
    return provider


def redirect_uri(provider: str, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    return f"{settings.public_base_url.rstrip('/')}/api/auth/{provider}/callback"


def create_state(provider: str) -> str:
    # Signed rather than stored, since form_post callbacks arrive cross-site
    # without our SameSite=Lax cookies.
    return create_token({"provider": provider, "nonce": secrets.token_urlsafe(16)}, STATE_TTL)


def verify_state(provider: str, state: Optional[str]) -> None:
    claims = decode_token(state) if state else None
    if not claims or claims.get("provider") != provider:
        raise AuthenticationFailed()


async def handle_callback(db: AsyncSession, profile: ProviderProfile) -> User:
    """
    Map a provider profile onto exactly one user.

    Existing accounts (any signup method) are matched by normalized email
    and get the provider id linked; new emails become role=user accounts
    without a password. Only an email the provider has verified is trusted
    for either, except when the account already carries this provider id.

    Raises:
        AuthenticationFailed: the provider gave no usable email or id, or an
            unverified email
    """
    if not profile.email or not profile.provider_id:
        logger.warning(f"{profile.provider} callback returned no usable profile")
        raise AuthenticationFailed()

    try:
        email = identity.normalize_email(profile.email)
    except ValidationError:
        logger.warning(f"{profile.provider} callback returned a malformed email")
        raise AuthenticationFailed()

    user = await identity.find_by_email(db, email)
    if user is not None and getattr(user, identity.provider_column(profile.provider)) == profile.provider_id:
        return user

    if not profile.email_verified:
        logger.warning(f"{profile.provider} callback with unverified email, refusing to sign in")
        raise AuthenticationFailed()

    if user is not None:
        return await identity.link_provider(db, user, profile.provider, profile.provider_id)

    display_name = profile.display_name or email.split("@")[0]
    return await identity.create_user(
        db,
        email=email,
        display_name=display_name[:100],
        provider=profile.provider,
        provider_id=profile.provider_id,
        role="user",
    )


__all__ = [
    "OAuthProvider",
    "ProviderProfile",
    "GoogleProvider",
    "MicrosoftProvider",
    "AppleProvider",
    "build_providers",
    "get_provider",
    "redirect_uri",
    "create_state",
    "verify_state",
    "handle_callback",
]
