import hmac
import json
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .database import get_db
from .models import User
from .services.session_auth import get_session_user

logger = logging.getLogger(__name__)


async def _apikey_from_body(request: Request) -> Optional[str]:
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("application/json"):
        return None
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if isinstance(body, dict):
        value = body.get("apikey")
        return str(value) if value is not None else None
    return None


async def require_api_key(request: Request) -> None:
    """Gate for the member API: ``apikey`` in query string, header or JSON body."""
    apikey = (
        request.query_params.get("apikey")
        or request.headers.get("apikey")
        or await _apikey_from_body(request)
    )
    if not apikey or not hmac.compare_digest(apikey.encode("utf-8"), settings.api_key.encode("utf-8")):
        logger.info({"event": "apikey_rejected", "path": request.url.path})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: API key is not correct",
        )


def is_admin(user: User) -> bool:
    return bool(user.is_admin) or (
        settings.admin_member_id is not None and user.id == settings.admin_member_id
    )


async def get_current_admin_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency to get the signed-in administrator.
    Raises HTTPException if the session member is missing or not an admin.
    """
    user = await get_session_user(request, db)
    if user is None or not is_admin(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No permission"
        )
    return user
