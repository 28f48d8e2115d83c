import logging

from fastapi import APIRouter, Depends, Form
from fastapi.responses import RedirectResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_current_admin_user
from ..models import Event, Photo, User
from ..services.event_service import event_out, photo_out
from ..services.storage import storage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _back() -> RedirectResponse:
    return RedirectResponse("/admin", status_code=302)


@router.get("")
async def admin_panel(
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    users = (await db.execute(select(User).order_by(User.id))).scalars().all()
    events = (await db.execute(select(Event).order_by(Event.id))).scalars().all()
    photos = (await db.execute(select(Photo).order_by(Photo.id))).scalars().all()
    return {
        "title": "Admin Control Panel",
        "users": [
            {
                "id": user.id,
                "email": user.email,
                "name": user.name,
                "is_admin": user.is_admin,
                "facebook": user.facebook,
                "google": user.google,
                "created_at": user.created_at,
            }
            for user in users
        ],
        "events": [event_out(event) for event in events],
        "photos": [
            {**photo_out(photo).model_dump(), "kind": photo.kind,
             "user_id": photo.user_id, "event_id": photo.event_id}
            for photo in photos
        ],
    }


@router.post("/account/delete")
async def delete_account(
    id: int = Form(...),
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    user = await db.get(User, id)
    if user is not None:
        photo_urls = [url for photo in user.photos for url in (photo.photo_url, photo.highres_url)]
        user.avatar = None
        await db.flush()
        await db.delete(user)
        await db.commit()
        await storage_service.delete_photo_files(*photo_urls)
        logger.info({"event": "admin_account_deleted", "admin_id": admin.id, "user_id": id})
    return _back()


@router.post("/event/delete")
async def delete_event(
    id: int = Form(...),
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    event = await db.get(Event, id)
    if event is not None:
        photo_urls = [url for photo in event.photos for url in (photo.photo_url, photo.highres_url)]
        await db.delete(event)
        await db.commit()
        await storage_service.delete_photo_files(*photo_urls)
        logger.info({"event": "admin_event_deleted", "admin_id": admin.id, "event_id": id})
    return _back()


@router.post("/photo/delete")
async def delete_photo(
    id: int = Form(...),
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    photo = await db.get(Photo, id)
    if photo is not None:
        owners = (await db.execute(select(User).where(User.avatar_id == id))).scalars().all()
        for owner in owners:
            remaining = [p for p in owner.photos if p.id != id]
            owner.avatar = remaining[0] if remaining else None
        await db.flush()
        await db.delete(photo)
        await db.commit()
        await storage_service.delete_photo_files(photo.photo_url, photo.highres_url)
        logger.info({"event": "admin_photo_deleted", "admin_id": admin.id, "photo_id": id})
    return _back()
