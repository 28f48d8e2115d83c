import pytest

from conftest import web_login
from eventhub.config import settings
from eventhub.services.mail_service import MailService


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    async def capture(to, subject, text, reply_to=None):
        sent.append({"to": to, "subject": subject, "text": text, "reply_to": reply_to})
        return True

    monkeypatch.setattr(MailService, "send", staticmethod(capture))
    return sent


class TestContactForm:
    async def test_page_for_anonymous_visitor(self, client):
        r = await client.get("/contact")
        assert r.status_code == 200
        body = r.json()
        assert body["title"] == "Contact"
        assert body["email"] is None

    async def test_page_prefills_signed_in_member(self, client, member):
        await web_login(client, "member@example.com", "secret123")
        body = (await client.get("/contact")).json()
        assert body["email"] == "member@example.com"

    async def test_message_is_mailed_to_site_address(self, client, outbox):
        r = await client.post("/contact", data={
            "name": "Ada", "email": "Ada@Example.com", "message": "Can I host a meetup?"})
        assert r.status_code == 302
        assert r.headers["location"] == "/contact"

        assert len(outbox) == 1
        mail = outbox[0]
        assert mail["to"] == settings.mail_from
        assert mail["reply_to"] == "Ada <ada@example.com>"
        assert "Can I host a meetup?" in mail["text"]

        body = (await client.get("/contact")).json()
        assert body["flash"]["success"] == ["Email has been sent successfully!"]

    async def test_validation_errors(self, client, outbox):
        r = await client.post("/contact", data={"name": " ", "email": "nope", "message": ""})
        assert r.headers["location"] == "/contact"
        assert outbox == []

        errors = (await client.get("/contact")).json()["flash"]["errors"]
        assert errors == [
            "Name cannot be blank.",
            "Please enter a valid email address.",
            "Message cannot be blank.",
        ]

    async def test_mail_failure_is_reported(self, client, monkeypatch):
        async def failing(to, subject, text, reply_to=None):
            return False

        monkeypatch.setattr(MailService, "send", staticmethod(failing))
        monkeypatch.setattr(MailService, "is_configured", staticmethod(lambda: True))

        await client.post("/contact", data={"name": "Ada", "email": "ada@example.com", "message": "Hi"})
        body = (await client.get("/contact")).json()
        assert body["flash"]["errors"] == ["Your message could not be sent. Please try again later."]
        assert "success" not in body["flash"]
