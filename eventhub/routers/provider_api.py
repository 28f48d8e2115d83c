from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from ..exceptions import ProviderError
from ..models import User
from ..services import provider_api
from ..services.session_auth import flash, require_authorized

router = APIRouter(prefix="/api", tags=["provider api"])


@router.get("")
async def api_index():
    return {
        "title": "API Examples",
        "pages": [
            {"name": "Foursquare", "path": "/api/foursquare"},
            {"name": "Facebook", "path": "/api/facebook"},
        ],
    }


@router.get("/foursquare")
async def foursquare_page(request: Request, user: User = Depends(require_authorized("foursquare"))):
    token = user.token_for("foursquare")
    try:
        results = await provider_api.foursquare_overview(token.access_token)
    except ProviderError as e:
        flash(request, "errors", str(e))
        return RedirectResponse("/api", status_code=302)
    return {"title": "Foursquare API", **results}


@router.get("/facebook")
async def facebook_page(request: Request, user: User = Depends(require_authorized("facebook"))):
    token = user.token_for("facebook")
    try:
        profile = await provider_api.facebook_profile(user.facebook or "me", token.access_token)
    except ProviderError as e:
        flash(request, "errors", str(e))
        return RedirectResponse("/api", status_code=302)
    return {"title": "Facebook API", "profile": profile}
