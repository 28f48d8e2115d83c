import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..dependencies import require_api_key
from ..exceptions import ApiError, NotFoundError
from ..models import Event, Photo, User
from ..schemas import EventBody, ProfileUpdate
from ..services.event_service import (
    event_detail_out,
    event_out,
    get_hosted_event_or_404,
    hosted_events,
    load_user,
    profile_out,
)
from ..services.jwt_service import ApiPrincipal, JWTService
from ..services.storage import storage_service
from ..utils import api_output, sanitize_text

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/members",
    tags=["members"],
    dependencies=[Depends(require_api_key)],
)


async def _acting_user(db: AsyncSession, principal: ApiPrincipal) -> User:
    if principal.user is not None:
        return principal.user
    user = await load_user(db, principal.member_id)
    if user is None:
        raise NotFoundError(principal.member_id)
    return user


def _photo_required(photo: Optional[UploadFile]) -> UploadFile:
    if photo is None or not photo.filename:
        raise ApiError(400, "Photo field is required.")
    return photo


async def _member_events_output(db: AsyncSession, member_id: int) -> dict:
    events = await hosted_events(db, member_id)
    return api_output("success", "success", events=[event_out(event) for event in events])


# Profile

@router.get("/{member_id}")
async def get_member_profile(
    member_id: int,
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
):
    """Profile of a member; other members' profiles are readable too."""
    user = principal.user
    return api_output("success", "success", email=user.email, profile=profile_out(user))


@router.patch("/{member_id}")
async def patch_member_profile(
    member_id: int,
    payload: ProfileUpdate,
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    """
    Update the caller's profile.

    Empty values leave the stored field unchanged. ``avatar`` must be the id
    of one of the member's own photos.
    """
    user = principal.user

    if payload.avatar is not None:
        photo_ids = [photo.id for photo in user.photos]
        if payload.avatar not in photo_ids:
            raise ApiError(422, [{
                "param": "avatar",
                "msg": f"Avatar should only be one of the [{','.join(str(i) for i in photo_ids)}]",
            }])

    if payload.email and payload.email != (user.email or "").lower():
        taken = await db.scalar(
            select(User.id).where(func.lower(User.email) == payload.email, User.id != user.id)
        )
        if taken is not None:
            raise ApiError(409, "The email address you have entered is already associated with an account.")
        user.email = payload.email

    user.name = sanitize_text(payload.name) or user.name
    user.gender = payload.gender or user.gender
    user.location = sanitize_text(payload.location) or user.location
    user.phone = payload.phone or user.phone
    user.website = payload.website or user.website
    if payload.avatar is not None:
        user.avatar_id = payload.avatar

    await db.commit()
    user = await load_user(db, user.id)
    return api_output("success", "success", profile=profile_out(user))


# Photos

@router.post("/{member_id}/photos")
async def post_member_photo(
    member_id: int,
    request: Request,
    photo: Optional[UploadFile] = File(None),
    width: Optional[int] = Form(None, ge=1, le=settings.photo_max_dimension),
    height: Optional[int] = Form(None, ge=1, le=settings.photo_max_dimension),
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    user = principal.user
    if len(user.photos) >= settings.member_photo_limit:
        raise ApiError(400, f"profile.photos exceeds the limit of {settings.member_photo_limit}")

    upload = _photo_required(photo)
    content = await upload.read()
    stored = await storage_service.save_photo(
        upload.filename, upload.content_type, content, str(request.base_url), width, height)

    saved = Photo(
        photo_url=stored.photo_url,
        highres_url=stored.highres_url,
        base_url=stored.base_url,
        kind="member",
    )
    user.photos.append(saved)
    await db.flush()
    if user.avatar_id is None:
        user.avatar = saved
    await db.commit()
    logger.info({"event": "member_photo_added", "user_id": user.id, "photo_id": saved.id})

    user = await load_user(db, user.id)
    return api_output("success", "success", profile=profile_out(user))


@router.delete("/{member_id}/photos/{photo_id}")
async def delete_member_photo(
    member_id: int,
    photo_id: int,
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    """Remove a photo; when it was the avatar the first remaining photo takes its place."""
    user = await _acting_user(db, principal)
    photo = next((p for p in user.photos if p.id == photo_id), None)
    if photo is None:
        raise NotFoundError(photo_id)

    remaining = [p for p in user.photos if p.id != photo_id]
    if user.avatar_id == photo_id:
        user.avatar = remaining[0] if remaining else None
        await db.flush()
    user.photos.remove(photo)
    await db.commit()
    await storage_service.delete_photo_files(photo.photo_url, photo.highres_url)
    logger.info({"event": "member_photo_deleted", "user_id": user.id, "photo_id": photo_id})

    user = await load_user(db, user.id)
    return api_output("success", "success", profile=profile_out(user))


# Events

@router.get("/{member_id}/events")
async def list_member_events(
    member_id: int,
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    return await _member_events_output(db, principal.user.id)


@router.post("/{member_id}/events")
async def create_member_event(
    member_id: int,
    payload: EventBody,
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    """Create an event hosted by the caller and return all of their events."""
    user = principal.user
    event = Event(
        name=sanitize_text(payload.name),
        description=sanitize_text(payload.description),
        time=payload.time,
        duration_hours=payload.duration,
        fee=int(round(payload.fee)),
        status=payload.status,
        hosts=[user],
        attendees=[],
        photos=[],
    )
    db.add(event)
    await db.commit()
    logger.info({"event": "event_created", "user_id": user.id, "event_id": event.id})
    return await _member_events_output(db, user.id)


@router.get("/{member_id}/events/{event_id}")
async def get_member_event(
    member_id: int,
    event_id: int,
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    event = await get_hosted_event_or_404(db, principal.user.id, event_id)
    detail = await event_detail_out(db, event, principal.member_id)
    return api_output("success", "success", events=detail)


@router.patch("/{member_id}/events/{event_id}")
async def patch_member_event(
    member_id: int,
    event_id: int,
    payload: EventBody,
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    """Replace every editable field of a hosted event."""
    event = await get_hosted_event_or_404(db, principal.member_id, event_id)
    event.name = sanitize_text(payload.name)
    event.description = sanitize_text(payload.description)
    event.time = payload.time
    event.duration_hours = payload.duration
    event.fee = int(round(payload.fee))
    event.status = payload.status
    await db.commit()

    event = await get_hosted_event_or_404(db, principal.member_id, event_id)
    return api_output("success", "success", events=event_out(event))


@router.delete("/{member_id}/events/{event_id}")
async def delete_member_event(
    member_id: int,
    event_id: int,
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    event = await get_hosted_event_or_404(db, principal.member_id, event_id)
    photo_urls = [url for photo in event.photos for url in (photo.photo_url, photo.highres_url)]
    await db.delete(event)
    await db.commit()
    await storage_service.delete_photo_files(*photo_urls)
    logger.info({"event": "event_deleted", "user_id": principal.member_id, "event_id": event_id})
    return await _member_events_output(db, principal.member_id)
