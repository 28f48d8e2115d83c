"""
Session-based sign-in for the web surface.

The session (a signed cookie managed by Starlette's ``SessionMiddleware``)
holds the signed-in member id, the page to return to after login and
pending flash messages.
"""
import logging
from typing import Dict, List, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..exceptions import RedirectRequired
from ..models import User

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"
RETURN_TO_KEY = "return_to"
FLASH_KEY = "flash"


def flash(request: Request, category: str, message: str) -> None:
    messages = request.session.setdefault(FLASH_KEY, {})
    messages.setdefault(category, []).append(message)
    # Reassign so the middleware notices the nested change
    request.session[FLASH_KEY] = messages


def pop_flash(request: Request) -> Dict[str, List[str]]:
    return request.session.pop(FLASH_KEY, None) or {}


def login_session(request: Request, user: User) -> None:
    request.session[SESSION_USER_KEY] = user.id
    logger.info({"event": "session_login", "user_id": user.id})


def logout_session(request: Request) -> None:
    user_id = request.session.get(SESSION_USER_KEY)
    request.session.clear()
    if user_id is not None:
        logger.info({"event": "session_logout", "user_id": user_id})


def remember_return_to(request: Request, path: str) -> None:
    request.session[RETURN_TO_KEY] = path


def pop_return_to(request: Request, default: str = "/") -> str:
    return request.session.pop(RETURN_TO_KEY, None) or default


async def get_session_user(request: Request, db: AsyncSession) -> Optional[User]:
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        return None
    user = await db.get(User, user_id)
    if user is None:
        # Account removed while signed in
        request.session.pop(SESSION_USER_KEY, None)
    return user


async def optional_login(request: Request, db: AsyncSession = Depends(get_db)) -> Optional[User]:
    return await get_session_user(request, db)


async def require_login(request: Request, db: AsyncSession = Depends(get_db)) -> User:
    """Signed-in member or a redirect to ``/login``."""
    user = await get_session_user(request, db)
    if user is None:
        remember_return_to(request, request.url.path)
        raise RedirectRequired("/login")
    return user


def require_authorized(provider: str):
    """Dependency factory: the member must hold an access token for ``provider``."""

    async def _authorized(user: User = Depends(require_login)) -> User:
        if user.token_for(provider) is None:
            raise RedirectRequired(f"/auth/{provider}")
        return user

    return _authorized
