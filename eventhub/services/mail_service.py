import logging
from typing import Optional

import httpx

from ..config import settings

logger = logging.getLogger(__name__)


class MailService:
    """Transactional mail through the Mailgun HTTP API.

    Without Mailgun credentials the message is only logged, which keeps
    development and tests free of network calls.
    """

    @staticmethod
    def is_configured() -> bool:
        return bool(settings.mailgun_api_key and settings.mailgun_domain)

    @staticmethod
    async def send(to: str, subject: str, text: str, reply_to: Optional[str] = None) -> bool:
        if not MailService.is_configured():
            logger.info({"event": "mail_not_sent", "to": to, "subject": subject, "text": text})
            return False

        url = f"https://api.mailgun.net/v3/{settings.mailgun_domain}/messages"
        data = {"from": settings.mail_from, "to": to, "subject": subject, "text": text}
        if reply_to:
            data["h:Reply-To"] = reply_to
        try:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
                response = await client.post(url, data=data, auth=("api", settings.mailgun_api_key))
        except httpx.RequestError as e:
            logger.error(f"Mailgun request error: {e}")
            return False

        if response.status_code >= 400:
            logger.error(f"Mailgun error: {response.status_code} {response.text}")
            return False
        logger.info({"event": "mail_sent", "to": to, "subject": subject})
        return True

    @staticmethod
    async def send_password_reset(to: str, reset_url: str) -> bool:
        text = (
            "You are receiving this email because you (or someone else) have requested "
            "the reset of the password for your account.\n\n"
            "Please click on the following link, or paste this into your browser to "
            f"complete the process:\n\n{reset_url}\n\n"
            "If you did not request this, please ignore this email and your password "
            "will remain unchanged.\n"
        )
        return await MailService.send(to, f"Reset your password on {settings.app_name}", text)

    @staticmethod
    async def send_password_changed(to: str) -> bool:
        text = (
            "Hello,\n\nThis is a confirmation that the password for your account "
            f"{to} has just been changed.\n"
        )
        return await MailService.send(to, f"Your {settings.app_name} password has been changed", text)

    @staticmethod
    async def send_contact_message(name: str, email: str, message: str) -> bool:
        """Forward a contact form message to the site's own address."""
        text = f"From: {name} <{email}>\n\n{message}\n"
        return await MailService.send(
            settings.mail_from, f"Contact Form | {settings.app_name}", text, reply_to=f"{name} <{email}>")
