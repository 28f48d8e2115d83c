import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..exceptions import AccountLinkError, ProviderError
from ..models import User
from ..services import oauth_service
from ..services.identity_service import SIGN_IN_PROVIDERS, authorize_provider, link_or_sign_in
from ..services.session_auth import (
    flash,
    login_session,
    optional_login,
    pop_return_to,
    require_login,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["oauth"])

STATE_KEY = "oauth_state"


def _redirect(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=302)


def _start(request: Request, provider_name: str) -> RedirectResponse:
    provider = oauth_service.get_provider(provider_name)
    if not provider.configured:
        raise ProviderError(f"{provider.label} sign-in is not configured")
    state = secrets.token_urlsafe(24)
    request.session[STATE_KEY] = {"provider": provider_name, "value": state}
    return _redirect(oauth_service.authorization_url(provider, state))


def _check_state(request: Request, provider_name: str, state: Optional[str]) -> None:
    expected = request.session.pop(STATE_KEY, None) or {}
    if (
        not state
        or expected.get("provider") != provider_name
        or not secrets.compare_digest(
            str(expected.get("value", "")).encode("utf-8"), state.encode("utf-8"))
    ):
        raise ProviderError("Invalid OAuth state")


# Foursquare is declared before the generic sign-in routes so it is not
# captured by the "{provider}" path parameter.

@router.get("/foursquare")
async def foursquare_start(request: Request, user: User = Depends(require_login)):
    try:
        return _start(request, "foursquare")
    except ProviderError as e:
        flash(request, "errors", str(e))
        return _redirect("/api")


@router.get("/foursquare/callback")
async def foursquare_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    user: User = Depends(require_login),
    db: AsyncSession = Depends(get_db),
):
    """Store the member's Foursquare token; identity is left untouched."""
    try:
        _check_state(request, "foursquare", state)
        if not code:
            raise ProviderError("Foursquare authorization was cancelled")
        provider = oauth_service.get_provider("foursquare")
        access_token = await oauth_service.exchange_code(provider, code)
    except ProviderError as e:
        logger.info({"event": "oauth_failed", "provider": "foursquare", "reason": str(e)})
        flash(request, "errors", str(e))
        return _redirect("/api")

    outcome = await authorize_provider(db, user, "foursquare", access_token)
    flash(request, "success", outcome.message)
    return _redirect("/api/foursquare")


@router.get("/{provider}")
async def sign_in_start(request: Request, provider: str):
    if provider not in SIGN_IN_PROVIDERS:
        flash(request, "errors", f"Unknown provider: {provider}")
        return _redirect("/login")
    try:
        return _start(request, provider)
    except ProviderError as e:
        flash(request, "errors", str(e))
        return _redirect("/login")


@router.get("/{provider}/callback")
async def sign_in_callback(
    request: Request,
    provider: str,
    code: Optional[str] = None,
    state: Optional[str] = None,
    current_user: Optional[User] = Depends(optional_login),
    db: AsyncSession = Depends(get_db),
):
    """
    Finish a Facebook or Google sign-in.

    Signed-in members get the provider linked to their account; anonymous
    visitors are signed in or get a new account.
    """
    failure_redirect = "/account" if current_user is not None else "/login"
    if provider not in SIGN_IN_PROVIDERS:
        flash(request, "errors", f"Unknown provider: {provider}")
        return _redirect(failure_redirect)

    try:
        _check_state(request, provider, state)
        if not code:
            raise ProviderError(f"{SIGN_IN_PROVIDERS[provider]} sign-in was cancelled")
        config = oauth_service.get_provider(provider)
        access_token = await oauth_service.exchange_code(config, code)
        profile = await oauth_service.fetch_profile(config, access_token)
        outcome = await link_or_sign_in(db, profile, access_token, current_user)
    except (ProviderError, AccountLinkError) as e:
        message = e.message if isinstance(e, AccountLinkError) else str(e)
        logger.info({"event": "oauth_failed", "provider": provider, "reason": message})
        flash(request, "errors", message)
        return _redirect(failure_redirect)

    if outcome.message:
        flash(request, "info", outcome.message)
    if current_user is None:
        login_session(request, outcome.user)
    return _redirect(pop_return_to(request))
