from conftest import web_login
from eventhub.exceptions import ProviderError
from eventhub.models import OAuthToken, User
from eventhub.services import provider_api


async def _authorize(test_session, user_id: int, kind: str, facebook_id: str = None) -> None:
    user = await test_session.get(User, user_id)
    user.tokens.append(OAuthToken(kind=kind, access_token=f"{kind}-token"))
    if facebook_id:
        user.facebook = facebook_id
    await test_session.commit()


class TestProviderPages:
    async def test_index(self, client):
        r = await client.get("/api")
        assert r.status_code == 200
        assert [p["path"] for p in r.json()["pages"]] == ["/api/foursquare", "/api/facebook"]

    async def test_anonymous_goes_to_login(self, client):
        r = await client.get("/api/foursquare")
        assert r.status_code == 302
        assert r.headers["location"] == "/login"

    async def test_unauthorized_member_goes_to_provider(self, client, member):
        await web_login(client, "member@example.com", "secret123")
        r = await client.get("/api/facebook")
        assert r.headers["location"] == "/auth/facebook"

    async def test_foursquare(self, client, member, test_session, monkeypatch):
        seen = {}

        async def foursquare_overview(access_token):
            seen["token"] = access_token
            return {"trending_venues": [], "venue_detail": {"name": "Central"}, "user_checkins": {}}

        monkeypatch.setattr(provider_api, "foursquare_overview", foursquare_overview)
        await _authorize(test_session, member["id"], "foursquare")
        await web_login(client, "member@example.com", "secret123")

        r = await client.get("/api/foursquare")
        assert r.status_code == 200
        assert r.json()["venue_detail"] == {"name": "Central"}
        assert seen["token"] == "foursquare-token"

    async def test_facebook(self, client, member, test_session, monkeypatch):
        async def facebook_profile(facebook_id, access_token):
            assert (facebook_id, access_token) == ("fb-42", "facebook-token")
            return {"id": "fb-42", "name": "Face Book"}

        monkeypatch.setattr(provider_api, "facebook_profile", facebook_profile)
        await _authorize(test_session, member["id"], "facebook", facebook_id="fb-42")
        await web_login(client, "member@example.com", "secret123")

        r = await client.get("/api/facebook")
        assert r.json()["profile"]["name"] == "Face Book"

    async def test_provider_failure_flashes(self, client, member, test_session, monkeypatch):
        async def failing(access_token):
            raise ProviderError("Foursquare is unreachable")

        monkeypatch.setattr(provider_api, "foursquare_overview", failing)
        await _authorize(test_session, member["id"], "foursquare")
        await web_login(client, "member@example.com", "secret123")

        r = await client.get("/api/foursquare")
        assert r.headers["location"] == "/api"
        r = await client.get("/account")
        assert "Foursquare is unreachable" in r.json()["flash"]["errors"]
