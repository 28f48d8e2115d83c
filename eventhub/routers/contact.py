import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from ..models import User
from ..schemas import ContactRequest
from ..services.mail_service import MailService
from ..services.session_auth import flash, optional_login, pop_flash

logger = logging.getLogger(__name__)

router = APIRouter(tags=["contact"])


def _back() -> RedirectResponse:
    return RedirectResponse("/contact", status_code=302)


@router.get("/contact")
async def contact_page(request: Request, user: Optional[User] = Depends(optional_login)):
    return {
        "title": "Contact",
        "name": user.name if user else None,
        "email": user.email if user else None,
        "flash": pop_flash(request),
    }


@router.post("/contact")
async def contact(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    message: str = Form(""),
):
    """Forward the message to the site address with the sender as Reply-To."""
    try:
        payload = ContactRequest(name=name, email=email, message=message)
    except ValidationError as e:
        for error in e.errors():
            flash(request, "errors", error["msg"].removeprefix("Value error, "))
        return _back()

    sent = await MailService.send_contact_message(payload.name, payload.email, payload.message)
    if not sent and MailService.is_configured():
        flash(request, "errors", "Your message could not be sent. Please try again later.")
        return _back()

    logger.info({"event": "contact_message", "email": payload.email})
    flash(request, "success", "Email has been sent successfully!")
    return _back()
