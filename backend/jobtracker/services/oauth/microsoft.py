from typing import Mapping, Optional

import httpx

from jobtracker.services.oauth.base import OAuthProvider, ProviderProfile, claim_is_true, id_token_claims


class MicrosoftProvider(OAuthProvider):
    name = "microsoft"
    response_mode = "form_post"

    def __init__(self, client_id: str, client_secret: str = "", tenant: str = "common"):
        super().__init__(client_id, client_secret)
        self.tenant = tenant
        base = f"https://login.microsoftonline.com/{tenant}/oauth2/v2.0"
        self.authorize_url = f"{base}/authorize"
        self.token_url = f"{base}/token"

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
            provider_id=str(claims.get("oid") or claims.get("sub") or ""),
            # preferred_username is set by the user's tenant and never verified
            email=claims.get("email"),
            display_name=claims.get("name") or "Microsoft User",
            # xms_edov: optional claim, true when the tenant verified the email domain
            email_verified=claim_is_true(claims.get("xms_edov")),
        )
