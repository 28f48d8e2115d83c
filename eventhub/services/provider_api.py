"""
Read-only calls against the providers' own APIs on behalf of a member.
"""
import asyncio
import logging
from typing import Any, Dict

import httpx

from ..config import settings
from ..exceptions import ProviderError
from .oauth_service import FACEBOOK_GRAPH_URL

logger = logging.getLogger(__name__)

FOURSQUARE_API_URL = "https://api.foursquare.com/v2"
# Foursquare v2 requires a version date on every call
FOURSQUARE_API_VERSION = "20170801"
FOURSQUARE_TRENDING_LL = "40.7222756,-74.0022724"
FOURSQUARE_SAMPLE_VENUE = "49da74aef964a5208b5e1fe3"
FACEBOOK_API_FIELDS = "id,name,email,first_name,last_name,gender,link,locale,timezone"


async def _get_json(client: httpx.AsyncClient, url: str, params: Dict[str, Any], label: str) -> Dict[str, Any]:
    try:
        response = await client.get(url, params=params)
    except httpx.RequestError as e:
        logger.error(f"{label} request error: {e}")
        raise ProviderError(f"{label} is unreachable") from e
    if response.status_code != 200:
        logger.error(f"{label} API error: {response.status_code} {url}")
        raise ProviderError(f"{label} API returned {response.status_code}")
    return response.json()


async def foursquare_overview(access_token: str) -> Dict[str, Any]:
    """Trending venues, one venue's details and the member's check-ins, fetched concurrently."""
    params = {"oauth_token": access_token, "v": FOURSQUARE_API_VERSION}
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        trending, venue, checkins = await asyncio.gather(
            _get_json(
                client,
                f"{FOURSQUARE_API_URL}/venues/trending",
                {**params, "ll": FOURSQUARE_TRENDING_LL, "limit": 50},
                "Foursquare",
            ),
            _get_json(client, f"{FOURSQUARE_API_URL}/venues/{FOURSQUARE_SAMPLE_VENUE}", params, "Foursquare"),
            _get_json(client, f"{FOURSQUARE_API_URL}/users/self/checkins", params, "Foursquare"),
        )
    return {
        "trending_venues": trending.get("response", {}).get("venues", []),
        "venue_detail": venue.get("response", {}).get("venue"),
        "user_checkins": checkins.get("response", {}).get("checkins", {}),
    }


async def facebook_profile(facebook_id: str, access_token: str) -> Dict[str, Any]:
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        return await _get_json(
            client,
            f"{FACEBOOK_GRAPH_URL}/{facebook_id}",
            {"fields": FACEBOOK_API_FIELDS, "access_token": access_token},
            "Facebook",
        )
