"""
Loading and shaping of members, events and their related records.

Relationships the API returns are eager loaded; ``populate_existing`` is used
after writes so the identity map reflects what was just committed.
"""
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import NotFoundError
from ..models import Event, EventComment, EventRating, Photo, User, event_hosts
from ..schemas import (
    CommentResponse,
    EventDetailResponse,
    EventResponse,
    HostResponse,
    PhotoResponse,
    ProfileResponse,
    RatingSummary,
    VenueResponse,
)
from ..utils import format_duration, format_event_time, format_fee


async def load_user(db: AsyncSession, user_id: int) -> Optional[User]:
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def load_event(db: AsyncSession, event_id: int) -> Optional[Event]:
    result = await db.execute(
        select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_event_or_404(db: AsyncSession, event_id: int) -> Event:
    event = await load_event(db, event_id)
    if event is None:
        raise NotFoundError(event_id)
    return event


async def hosted_events(db: AsyncSession, member_id: int) -> List[Event]:
    stmt = (
        select(Event)
        .join(event_hosts, event_hosts.c.event_id == Event.id)
        .where(event_hosts.c.user_id == member_id)
        .order_by(Event.id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return list(result.scalars().unique().all())


async def get_hosted_event_or_404(db: AsyncSession, member_id: int, event_id: int) -> Event:
    event = await load_event(db, event_id)
    if event is None or not event.is_hosted_by(member_id):
        raise NotFoundError(event_id)
    return event


async def find_events(
    db: AsyncSession,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Event]:
    stmt = select(Event).order_by(Event.time, Event.id)
    if status:
        stmt = stmt.where(Event.status == status)
    result = await db.execute(stmt.offset(offset).limit(limit))
    return list(result.scalars().all())


async def event_comments(db: AsyncSession, event_id: int) -> List[EventComment]:
    result = await db.execute(
        select(EventComment).where(EventComment.event_id == event_id).order_by(EventComment.id)
    )
    return list(result.scalars().all())


async def rating_summary(db: AsyncSession, event_id: int, member_id: Optional[int] = None) -> RatingSummary:
    average, count = (await db.execute(
        select(func.avg(EventRating.rating), func.count(EventRating.id))
        .where(EventRating.event_id == event_id)
    )).one()
    mine = None
    if member_id is not None:
        mine = await db.scalar(
            select(EventRating.rating).where(
                EventRating.event_id == event_id, EventRating.member_id == member_id)
        )
    return RatingSummary(
        average=round(float(average), 2) if average is not None else None,
        count=count or 0,
        mine=mine,
    )


# Serializers

def photo_out(photo: Optional[Photo]) -> Optional[PhotoResponse]:
    return PhotoResponse.model_validate(photo) if photo is not None else None


def host_out(user: User) -> HostResponse:
    return HostResponse(
        id=user.id,
        name=user.name,
        gender=user.gender,
        location=user.location,
        avatar=photo_out(user.avatar),
    )


def profile_out(user: User) -> ProfileResponse:
    return ProfileResponse(
        name=user.name,
        gender=user.gender,
        location=user.location,
        phone=user.phone,
        website=user.website,
        picture=user.picture,
        avatar=photo_out(user.avatar),
        photos=[photo_out(photo) for photo in user.photos],
    )


def event_out(event: Event) -> EventResponse:
    return EventResponse(
        id=event.id,
        name=event.name,
        description=event.description,
        time=event.time,
        time_display=format_event_time(event.time),
        duration_hours=event.duration_hours,
        duration=format_duration(event.duration_hours),
        fee=event.fee,
        fee_display=format_fee(event.fee),
        status=event.status,
        hosts=[host_out(host) for host in event.hosts],
        photos=[photo_out(photo) for photo in event.photos],
        venue=VenueResponse.model_validate(event.venue) if event.venue is not None else None,
        attendee_count=len(event.attendees),
        created_at=event.created_at,
        updated_at=event.updated_at,
    )


def comment_out(comment: EventComment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        title=comment.title,
        comment=comment.comment,
        member=host_out(comment.member),
        created_at=comment.created_at,
    )


async def event_detail_out(
    db: AsyncSession, event: Event, viewer_id: Optional[int] = None
) -> EventDetailResponse:
    comments = await event_comments(db, event.id)
    return EventDetailResponse(
        **event_out(event).model_dump(),
        attendees=[host_out(user) for user in event.attendees],
        comments=[comment_out(comment) for comment in comments],
        rating=await rating_summary(db, event.id, viewer_id),
    )
