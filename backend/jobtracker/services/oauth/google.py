from typing import Mapping, Optional

import httpx

from jobtracker.errors import AuthenticationFailed
from jobtracker.services.oauth.base import OAuthProvider, ProviderProfile, claim_is_true


class GoogleProvider(OAuthProvider):
    name = "google"
    authorize_url = "https://accounts.google.com/o/oauth2/v2/auth"
    token_url = "https://oauth2.googleapis.com/token"
    userinfo_url = "https://openidconnect.googleapis.com/v1/userinfo"

    async def exchange_code(
        self,
        code: str,
        redirect_uri: str,
        form: Optional[Mapping[str, str]] = None,
    ) -> ProviderProfile:
        async with httpx.AsyncClient() as client:
            tokens = await self._request_tokens(client, code, redirect_uri)
            access_token = tokens.get("access_token")
            if not access_token:
                raise AuthenticationFailed("google returned no access token")

            try:
                response = await client.get(
                    self.userinfo_url,
                    headers={"Authorization": f"Bearer {access_token}"},
                    timeout=15.0,
                )
                response.raise_for_status()
                info = response.json()
            except (httpx.HTTPError, ValueError) as e:
                raise AuthenticationFailed("google userinfo request failed") from e

        return ProviderProfile(
            provider=self.name,
            provider_id=str(info.get("sub", "")),
            email=info.get("email"),
            display_name=info.get("name"),
            email_verified=claim_is_true(info.get("email_verified")),
        )
