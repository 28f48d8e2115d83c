"""
OAuth 2.0 provider plumbing (Facebook, Google, Foursquare).

Only the authorization-code flow is used: build the provider's consent URL,
exchange the returned code for an access token, then fetch the member's
profile. Decisions about which account the identity belongs to live in
``identity_service``.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from ..config import settings
from ..exceptions import ProviderError

logger = logging.getLogger(__name__)

FACEBOOK_GRAPH_URL = "https://graph.facebook.com/v19.0"
FACEBOOK_PROFILE_FIELDS = "id,first_name,last_name,email,gender,location,link,locale,timezone"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"


@dataclass
class ProviderConfig:
    name: str
    label: str
    authorize_url: str
    token_url: str
    scope: Optional[str]
    client_id: Optional[str]
    client_secret: Optional[str]
    redirect_uri: str
    # Foursquare expects the token request as a GET
    token_method: str = "POST"

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass
class OAuthProfile:
    provider: str
    provider_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    gender: Optional[str] = None
    picture: Optional[str] = None
    location: Optional[str] = None


def get_provider(name: str) -> ProviderConfig:
    base = settings.base_url.rstrip("/")
    if name == "facebook":
        return ProviderConfig(
            name="facebook",
            label="Facebook",
            authorize_url="https://www.facebook.com/v19.0/dialog/oauth",
            token_url=f"{FACEBOOK_GRAPH_URL}/oauth/access_token",
            scope="email,user_location",
            client_id=settings.facebook_client_id,
            client_secret=settings.facebook_client_secret,
            redirect_uri=f"{base}/auth/facebook/callback",
        )
    if name == "google":
        return ProviderConfig(
            name="google",
            label="Google",
            authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
            token_url="https://oauth2.googleapis.com/token",
            scope="openid profile email",
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            redirect_uri=f"{base}/auth/google/callback",
        )
    if name == "foursquare":
        return ProviderConfig(
            name="foursquare",
            label="Foursquare",
            authorize_url="https://foursquare.com/oauth2/authenticate",
            token_url="https://foursquare.com/oauth2/access_token",
            scope=None,
            client_id=settings.foursquare_client_id,
            client_secret=settings.foursquare_client_secret,
            redirect_uri=settings.foursquare_redirect_url or f"{base}/auth/foursquare/callback",
            token_method="GET",
        )
    raise ProviderError(f"Unknown provider: {name}")


def authorization_url(provider: ProviderConfig, state: str) -> str:
    params = {
        "client_id": provider.client_id,
        "redirect_uri": provider.redirect_uri,
        "response_type": "code",
        "state": state,
    }
    if provider.scope:
        params["scope"] = provider.scope
    return f"{provider.authorize_url}?{urlencode(params)}"


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        headers={"User-Agent": "EventHub/1.0", "Accept": "application/json"},
    )


async def exchange_code(provider: ProviderConfig, code: str) -> str:
    """Trade an authorization code for an access token."""
    params = {
        "client_id": provider.client_id,
        "client_secret": provider.client_secret,
        "code": code,
        "grant_type": "authorization_code",
        "redirect_uri": provider.redirect_uri,
    }
    try:
        async with _client() as client:
            if provider.token_method == "GET":
                response = await client.get(provider.token_url, params=params)
            else:
                response = await client.post(provider.token_url, data=params)
    except httpx.RequestError as e:
        logger.error(f"{provider.label} token exchange request error: {e}")
        raise ProviderError(f"{provider.label} is unreachable") from e

    if response.status_code != 200:
        logger.error(f"{provider.label} token exchange error: {response.status_code}")
        raise ProviderError(f"{provider.label} rejected the authorization code")

    access_token = response.json().get("access_token")
    if not access_token:
        raise ProviderError(f"{provider.label} returned no access token")
    return access_token


def parse_facebook_profile(data: Dict[str, Any]) -> OAuthProfile:
    provider_id = str(data["id"])
    first = data.get("first_name") or ""
    last = data.get("last_name") or ""
    name = f"{first} {last}".strip() or data.get("name")
    location = data.get("location") or {}
    return OAuthProfile(
        provider="facebook",
        provider_id=provider_id,
        email=data.get("email"),
        name=name or None,
        gender=data.get("gender"),
        picture=f"https://graph.facebook.com/{provider_id}/picture?type=large",
        location=location.get("name") if isinstance(location, dict) else None,
    )


def parse_google_profile(data: Dict[str, Any]) -> OAuthProfile:
    provider_id = data.get("sub") or data.get("id")
    if not provider_id:
        raise KeyError("sub")
    email = data.get("email")
    if not email and data.get("emails"):
        email = data["emails"][0].get("value")
    return OAuthProfile(
        provider="google",
        provider_id=str(provider_id),
        email=email,
        name=data.get("name") or data.get("displayName"),
        gender=data.get("gender"),
        picture=data.get("picture"),
    )


async def fetch_profile(provider: ProviderConfig, access_token: str) -> OAuthProfile:
    if provider.name == "facebook":
        url = f"{FACEBOOK_GRAPH_URL}/me"
        request_kwargs = {"params": {"fields": FACEBOOK_PROFILE_FIELDS, "access_token": access_token}}
        parse = parse_facebook_profile
    elif provider.name == "google":
        url = GOOGLE_USERINFO_URL
        request_kwargs = {"headers": {"Authorization": f"Bearer {access_token}"}}
        parse = parse_google_profile
    else:
        raise ProviderError(f"{provider.label} does not provide sign-in profiles")

    try:
        async with _client() as client:
            response = await client.get(url, **request_kwargs)
    except httpx.RequestError as e:
        logger.error(f"{provider.label} profile request error: {e}")
        raise ProviderError(f"{provider.label} is unreachable") from e

    if response.status_code != 200:
        logger.error(f"{provider.label} profile error: {response.status_code}")
        raise ProviderError(f"Could not load the {provider.label} profile")

    try:
        return parse(response.json())
    except (KeyError, TypeError, ValueError) as e:
        raise ProviderError(f"Unexpected {provider.label} profile payload") from e
