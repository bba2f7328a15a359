from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping, Optional

import httpx
from jose import JWTError, jwt

from jobtracker.errors import AuthenticationFailed


@dataclass
class ProviderProfile:
    """Identity handed back by a provider after a successful code exchange."""

    provider: str
    provider_id: str
    email: Optional[str]
    display_name: Optional[str] = None
    # Only a provider-verified email may be matched to an existing account
    email_verified: bool = False


class OAuthProvider(ABC):
    """Base class for OAuth / OpenID Connect login providers"""

    name: str = "unknown"
    authorize_url: str = ""
    token_url: str = ""
    scope: str = "openid email profile"
    response_mode: Optional[str] = None

    def __init__(self, client_id: str, client_secret: str = ""):
        self.client_id = client_id
        self.client_secret = client_secret

    @property
    def configured(self) -> bool:
        return bool(self.client_id)

    def authorization_url(self, state: str, redirect_uri: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": self.scope,
            "state": state,
        }
        if self.response_mode:
            params["response_mode"] = self.response_mode
        return str(httpx.URL(self.authorize_url, params=params))

    @abstractmethod
    async def exchange_code(
        self,
        code: str,
        redirect_uri: str,
        form: Optional[Mapping[str, str]] = None,
    ) -> ProviderProfile:
        """Trade an authorization code for the user's profile"""
        pass

    def _client_secret(self) -> str:
        return self.client_secret

    async def _request_tokens(self, client: httpx.AsyncClient, code: str, redirect_uri: str) -> dict:
        try:
            response = await client.post(
                self.token_url,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": redirect_uri,
                    "client_id": self.client_id,
                    "client_secret": self._client_secret(),
                },
                headers={"Accept": "application/json"},
                timeout=15.0,
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise AuthenticationFailed(f"{self.name} token exchange failed") from e


def claim_is_true(value) -> bool:
    """Boolean claims arrive as true or as the string "true", depending on the provider."""
    return value is True or (isinstance(value, str) and value.lower() == "true")


def id_token_claims(token_response: dict) -> dict:
    """
    Claims of the id_token returned by the token endpoint.

    The token came straight from the provider over TLS in exchange for our
    client secret, so its signature is not re-verified here.
    """
    raw = token_response.get("id_token")
    if not raw:
        return {}
    try:
        return jwt.get_unverified_claims(raw)
    except JWTError:
        return {}
