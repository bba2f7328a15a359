"""
Sign in with Apple

Apple differs from the other providers in two ways:
- the client secret is a short-lived ES256 JWT signed with the team's
  private key rather than a static string
- the user's name is only sent once, as a JSON "user" form field on the
  very first authorization, and never appears in the id_token
"""

import json
import logging
import time
from pathlib import Path
from typing import Mapping, Optional

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from jobtracker.errors import AuthenticationFailed
from jobtracker.services.oauth.base import OAuthProvider, ProviderProfile, claim_is_true, id_token_claims

logger = logging.getLogger(__name__)

CLIENT_SECRET_TTL = 300


class AppleProvider(OAuthProvider):
    name = "apple"
    authorize_url = "https://appleid.apple.com/auth/authorize"
    token_url = "https://appleid.apple.com/auth/token"
    scope = "name email"
    response_mode = "form_post"

    def __init__(self, client_id: str, team_id: str = "", key_id: str = "", private_key_path: str = ""):
        super().__init__(client_id)
        self.team_id = team_id
        self.key_id = key_id
        self.private_key_path = private_key_path

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.team_id and self.key_id and self.private_key_path)

    def _client_secret(self) -> str:
        try:
            private_key = Path(self.private_key_path).read_text()
        except OSError as e:
            logger.error(f"Cannot read Apple private key {self.private_key_path}: {e}")
            raise AuthenticationFailed("apple client secret unavailable") from e

        now = int(time.time())
        try:
            return jwt.encode(
                {
                    "iss": self.team_id,
                    "iat": now,
                    "exp": now + CLIENT_SECRET_TTL,
                    "aud": "https://appleid.apple.com",
                    "sub": self.client_id,
                },
                private_key,
                algorithm="ES256",
                headers={"kid": self.key_id},
            )
        except JOSEError as e:
            logger.error(f"Apple private key {self.private_key_path} cannot sign ES256: {e}")
            raise AuthenticationFailed("apple client secret unavailable") from e

    async def exchange_code(
        self,
        code: str,
        redirect_uri: str,
        form: Optional[Mapping[str, str]] = None,
    ) -> ProviderProfile:
        async with httpx.AsyncClient() as client:
            tokens = await self._request_tokens(client, code, redirect_uri)

        claims = id_token_claims(tokens)
        return ProviderProfile(
            provider=self.name,
            provider_id=str(claims.get("sub", "")),
            email=claims.get("email"),
            display_name=_first_name(form) or "Apple User",
            email_verified=claim_is_true(claims.get("email_verified")),
        )


def _first_name(form: Optional[Mapping[str, str]]) -> Optional[str]:
    if not form or not form.get("user"):
        return None
    try:
        user = json.loads(form["user"])
    except ValueError:
        return None
    name = user.get("name") if isinstance(user, dict) else None
    if not isinstance(name, dict):
        return None
    first = name.get("firstName")
    return first if isinstance(first, str) and first.strip() else None
