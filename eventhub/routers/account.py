"""
Browser-facing account pages backed by the session cookie.

Pages answer with JSON (flash messages included); form posts answer with a
302 redirect, the way a server-rendered site would.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models import User
from ..exceptions import AccountLinkError
from ..schemas import ForgotRequest, LoginRequest, PasswordChange, ProfileUpdate, SignupRequest
from ..services.event_service import profile_out
from ..services.identity_service import LINKABLE_PROVIDERS, unlink_provider
from ..services.mail_service import MailService
from ..services.password_service import (
    INVALID_CREDENTIALS,
    authenticate_local,
    find_by_email,
    hash_password,
)
from ..services.session_auth import (
    flash,
    login_session,
    logout_session,
    optional_login,
    pop_flash,
    pop_return_to,
    require_login,
)
from ..services.storage import storage_service
from ..utils import sanitize_text

logger = logging.getLogger(__name__)

router = APIRouter(tags=["account"])


def _redirect(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=302)


def _validation_messages(error: ValidationError) -> List[str]:
    return [e["msg"].removeprefix("Value error, ") for e in error.errors()]


def _flash_errors(request: Request, error: ValidationError) -> None:
    for message in _validation_messages(error):
        flash(request, "errors", message)


def _reset_expired(user: User) -> bool:
    expires = user.password_reset_expires
    if expires is None:
        return True
    # SQLite hands back naive datetimes
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    return expires < datetime.now(timezone.utc)


async def _user_by_reset_token(db: AsyncSession, token: str) -> Optional[User]:
    user = await db.scalar(select(User).where(User.password_reset_token == token))
    if user is None or _reset_expired(user):
        return None
    return user


# Sign in / sign out

@router.get("/login")
async def login_page(request: Request, user: Optional[User] = Depends(optional_login)):
    if user is not None:
        return _redirect("/")
    return {"title": "Login", "flash": pop_flash(request)}


@router.post("/login")
async def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    try:
        credentials = LoginRequest(email=email, password=password)
    except ValidationError as e:
        _flash_errors(request, e)
        return _redirect("/login")

    user = await authenticate_local(db, credentials.email, credentials.password)
    if user is None:
        flash(request, "errors", INVALID_CREDENTIALS)
        return _redirect("/login")

    login_session(request, user)
    flash(request, "success", "Success! You are logged in.")
    return _redirect(pop_return_to(request))


@router.get("/logout")
async def logout(request: Request):
    logout_session(request)
    return _redirect("/")


@router.get("/signup")
async def signup_page(request: Request, user: Optional[User] = Depends(optional_login)):
    if user is not None:
        return _redirect("/")
    return {"title": "Create Account", "flash": pop_flash(request)}


@router.post("/signup")
async def signup(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form("", alias="confirmPassword"),
    db: AsyncSession = Depends(get_db),
):
    try:
        payload = SignupRequest(email=email, password=password, confirmPassword=confirm_password)
    except ValidationError as e:
        _flash_errors(request, e)
        return _redirect("/signup")

    if await find_by_email(db, payload.email) is not None:
        flash(request, "errors", "Account with that email address already exists.")
        return _redirect("/signup")

    user = User(email=payload.email, password=hash_password(payload.password), tokens=[], photos=[])
    db.add(user)
    await db.commit()
    logger.info({"event": "web_signup", "user_id": user.id})
    login_session(request, user)
    return _redirect("/")


# Password reset

@router.get("/forgot")
async def forgot_page(request: Request, user: Optional[User] = Depends(optional_login)):
    if user is not None:
        return _redirect("/")
    return {"title": "Forgot Password", "flash": pop_flash(request)}


@router.post("/forgot")
async def forgot(
    request: Request,
    email: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    """Issue a reset token; the answer never reveals whether the account exists."""
    try:
        payload = ForgotRequest(email=email)
    except ValidationError as e:
        _flash_errors(request, e)
        return _redirect("/forgot")

    user = await find_by_email(db, payload.email)
    if user is not None:
        token = secrets.token_hex(16)
        user.password_reset_token = token
        user.password_reset_expires = datetime.now(timezone.utc) + timedelta(
            minutes=settings.password_reset_expiry_minutes)
        await db.commit()
        reset_url = f"{settings.base_url.rstrip('/')}/reset/{token}"
        await MailService.send_password_reset(user.email, reset_url)
        logger.info({"event": "password_reset_requested", "user_id": user.id})

    flash(request, "info", f"An e-mail has been sent to {payload.email} with further instructions.")
    return _redirect("/forgot")


@router.get("/reset/{token}")
async def reset_page(request: Request, token: str, db: AsyncSession = Depends(get_db)):
    if await _user_by_reset_token(db, token) is None:
        flash(request, "errors", "Password reset token is invalid or has expired.")
        return _redirect("/forgot")
    return {"title": "Password Reset", "flash": pop_flash(request)}


@router.post("/reset/{token}")
async def reset_password(
    request: Request,
    token: str,
    password: str = Form(""),
    confirm: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    user = await _user_by_reset_token(db, token)
    if user is None:
        flash(request, "errors", "Password reset token is invalid or has expired.")
        return _redirect("/forgot")

    try:
        payload = PasswordChange(password=password, confirmPassword=confirm)
    except ValidationError as e:
        _flash_errors(request, e)
        return _redirect(f"/reset/{token}")

    user.password = hash_password(payload.password)
    user.password_reset_token = None
    user.password_reset_expires = None
    await db.commit()
    login_session(request, user)
    if user.email:
        await MailService.send_password_changed(user.email)
    flash(request, "success", "Success! Your password has been changed.")
    return _redirect("/")


# Account settings

@router.get("/account")
async def account_page(request: Request, user: User = Depends(require_login)):
    return {
        "title": "Account Management",
        "email": user.email,
        "profile": profile_out(user),
        "gravatar": user.gravatar(),
        "linked": {provider: bool(user.token_for(provider)) for provider in LINKABLE_PROVIDERS},
        "has_password": bool(user.password),
        "flash": pop_flash(request),
    }


@router.post("/account/profile")
async def update_profile(
    request: Request,
    email: str = Form(""),
    name: str = Form(""),
    gender: str = Form(""),
    location: str = Form(""),
    website: str = Form(""),
    user: User = Depends(require_login),
    db: AsyncSession = Depends(get_db),
):
    try:
        payload = ProfileUpdate(
            email=email or None,
            name=name or None,
            gender=gender or None,
            location=location or None,
            website=website or None,
        )
    except ValidationError as e:
        _flash_errors(request, e)
        return _redirect("/account")

    if payload.email and payload.email != (user.email or "").lower():
        taken = await db.scalar(
            select(User.id).where(func.lower(User.email) == payload.email, User.id != user.id)
        )
        if taken is not None:
            flash(request, "errors",
                  "The email address you have entered is already associated with an account.")
            return _redirect("/account")
        user.email = payload.email

    user.name = sanitize_text(payload.name) or user.name
    user.gender = payload.gender or user.gender
    user.location = sanitize_text(payload.location) or user.location
    user.website = payload.website or user.website
    await db.commit()
    flash(request, "success", "Profile information has been updated.")
    return _redirect("/account")


@router.post("/account/password")
async def update_password(
    request: Request,
    password: str = Form(""),
    confirm_password: str = Form("", alias="confirmPassword"),
    user: User = Depends(require_login),
    db: AsyncSession = Depends(get_db),
):
    try:
        payload = PasswordChange(password=password, confirmPassword=confirm_password)
    except ValidationError as e:
        _flash_errors(request, e)
        return _redirect("/account")

    user.password = hash_password(payload.password)
    await db.commit()
    flash(request, "success", "Password has been changed.")
    return _redirect("/account")


@router.post("/account/delete")
async def delete_account(
    request: Request,
    user: User = Depends(require_login),
    db: AsyncSession = Depends(get_db),
):
    photo_urls = [url for photo in user.photos for url in (photo.photo_url, photo.highres_url)]
    user_id = user.id
    user.avatar = None
    await db.flush()
    await db.delete(user)
    await db.commit()
    await storage_service.delete_photo_files(*photo_urls)

    logout_session(request)
    logger.info({"event": "account_deleted", "user_id": user_id})
    flash(request, "info", "Your account has been deleted.")
    return _redirect("/")


@router.get("/account/unlink/{provider}")
async def unlink(
    request: Request,
    provider: str,
    user: User = Depends(require_login),
    db: AsyncSession = Depends(get_db),
):
    try:
        message = await unlink_provider(db, user, provider)
    except AccountLinkError as e:
        flash(request, "errors", e.message)
        return _redirect("/account")
    flash(request, "info", message)
    return _redirect("/account")
