import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..dependencies import require_api_key
from ..exceptions import ApiError, ForbiddenError, NotFoundError
from ..models import EVENT_STATUSES, Event, EventComment, EventRating, Photo, Venue
from ..schemas import CommentBody, RatingBody, VenueBody
from ..services.event_service import (
    comment_out,
    event_comments,
    event_out,
    find_events,
    get_event_or_404,
    host_out,
    load_user,
    rating_summary,
)
from ..services.jwt_service import ApiPrincipal, JWTService
from ..services.storage import storage_service
from ..utils import api_output, sanitize_text

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/events",
    tags=["events"],
    dependencies=[Depends(require_api_key)],
)


async def _hosted_event(db: AsyncSession, event_id: int, principal: ApiPrincipal) -> Event:
    event = await get_event_or_404(db, event_id)
    if not event.is_hosted_by(principal.member_id):
        raise ForbiddenError()
    return event


async def _member(db: AsyncSession, principal: ApiPrincipal):
    user = await load_user(db, principal.member_id)
    if user is None:
        raise ApiError(401, "User of ID from JWT payload is not found.")
    return user


@router.get("/find")
async def find(
    status: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """
    Browse events with their hosts, photos and venue.

    No member token is needed, only the API key.
    """
    if status is not None and status not in EVENT_STATUSES:
        raise ApiError(422, [{
            "param": "status",
            "msg": f"status should be one of the value of the list {','.join(EVENT_STATUSES)}.",
        }])
    events = await find_events(db, status=status, limit=limit, offset=offset)
    return api_output("success", "success", events=[event_out(event) for event in events])


# Photos

@router.post("/{event_id}/photos")
async def post_event_photo(
    event_id: int,
    request: Request,
    photo: Optional[UploadFile] = File(None),
    width: Optional[int] = Form(None, ge=1, le=settings.photo_max_dimension),
    height: Optional[int] = Form(None, ge=1, le=settings.photo_max_dimension),
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    event = await _hosted_event(db, event_id, principal)
    if len(event.photos) >= settings.event_photo_limit:
        raise ApiError(400, f"Photos exceeds the limit of {settings.event_photo_limit}")
    if photo is None or not photo.filename:
        raise ApiError(400, "Photo field is required.")

    content = await photo.read()
    stored = await storage_service.save_photo(
        photo.filename, photo.content_type, content, str(request.base_url), width, height)
    event.photos.append(Photo(
        photo_url=stored.photo_url,
        highres_url=stored.highres_url,
        base_url=stored.base_url,
        kind="event",
    ))
    await db.commit()
    logger.info({"event": "event_photo_added", "event_id": event_id, "user_id": principal.member_id})

    event = await get_event_or_404(db, event_id)
    return api_output("success", "success", events=event_out(event))


@router.delete("/{event_id}/photos/{photo_id}")
async def delete_event_photo(
    event_id: int,
    photo_id: int,
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    event = await _hosted_event(db, event_id, principal)
    photo = next((p for p in event.photos if p.id == photo_id), None)
    if photo is None:
        raise NotFoundError(photo_id)

    event.photos.remove(photo)
    await db.commit()
    await storage_service.delete_photo_files(photo.photo_url, photo.highres_url)
    logger.info({"event": "event_photo_deleted", "event_id": event_id, "photo_id": photo_id})

    event = await get_event_or_404(db, event_id)
    return api_output("success", "success", events=event_out(event))


# Venues

@router.post("/{event_id}/venues")
async def post_event_venue(
    event_id: int,
    payload: VenueBody,
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    """Create a venue and attach it to a hosted event."""
    event = await _hosted_event(db, event_id, principal)
    venue = Venue(
        name=sanitize_text(payload.name),
        address1=sanitize_text(payload.address1),
        address2=sanitize_text(payload.address2),
        address3=sanitize_text(payload.address3),
        city=sanitize_text(payload.city),
        country=sanitize_text(payload.country),
        phone=payload.phone,
        lat=payload.lat,
        lon=payload.lon,
    )
    db.add(venue)
    event.venue = venue
    await db.commit()
    logger.info({"event": "venue_attached", "event_id": event_id, "venue_id": venue.id})

    event = await get_event_or_404(db, event_id)
    return api_output("success", "success", events=event_out(event))


# Attendance

@router.post("/{event_id}/attendance")
async def join_event(
    event_id: int,
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    event = await get_event_or_404(db, event_id)
    user = await _member(db, principal)
    if not any(attendee.id == user.id for attendee in event.attendees):
        event.attendees.append(user)
        await db.commit()
        logger.info({"event": "event_joined", "event_id": event_id, "user_id": user.id})
        event = await get_event_or_404(db, event_id)
    return api_output("success", "success", attendees=[host_out(a) for a in event.attendees])


@router.delete("/{event_id}/attendance")
async def leave_event(
    event_id: int,
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    event = await get_event_or_404(db, event_id)
    attendee = next((a for a in event.attendees if a.id == principal.member_id), None)
    if attendee is not None:
        event.attendees.remove(attendee)
        await db.commit()
        logger.info({"event": "event_left", "event_id": event_id, "user_id": principal.member_id})
        event = await get_event_or_404(db, event_id)
    return api_output("success", "success", attendees=[host_out(a) for a in event.attendees])


# Comments and ratings

@router.post("/{event_id}/comments")
async def post_event_comment(
    event_id: int,
    payload: CommentBody,
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    await get_event_or_404(db, event_id)
    user = await _member(db, principal)
    db.add(EventComment(
        event_id=event_id,
        member=user,
        title=sanitize_text(payload.title),
        comment=sanitize_text(payload.comment),
    ))
    await db.commit()

    comments = await event_comments(db, event_id)
    return api_output("success", "success", comments=[comment_out(c) for c in comments])


@router.post("/{event_id}/ratings")
async def post_event_rating(
    event_id: int,
    payload: RatingBody,
    principal: ApiPrincipal = Depends(JWTService.get_api_member),
    db: AsyncSession = Depends(get_db),
):
    """Rate an event from 1 to 5; rating again replaces the earlier value."""
    await get_event_or_404(db, event_id)
    user = await _member(db, principal)
    existing = await db.scalar(
        select(EventRating).where(
            EventRating.event_id == event_id, EventRating.member_id == user.id)
    )
    if existing is not None:
        existing.rating = payload.rating
    else:
        db.add(EventRating(event_id=event_id, member_id=user.id, rating=payload.rating))
    await db.commit()

    summary = await rating_summary(db, event_id, user.id)
    return api_output("success", "success", rating=summary)
