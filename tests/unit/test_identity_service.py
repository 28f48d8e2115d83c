"""Account resolution rules for OAuth identities."""
import pytest
from sqlalchemy import select

from eventhub.exceptions import AccountLinkError
from eventhub.models import OAuthToken, User
from eventhub.services.identity_service import (
    authorize_provider,
    link_or_sign_in,
    sign_in_methods,
    unlink_provider,
)
from eventhub.services.oauth_service import OAuthProfile
from eventhub.services.password_service import hash_password


def _facebook(provider_id="fb-1", email="fb@example.com", **kwargs) -> OAuthProfile:
    return OAuthProfile(
        provider="facebook",
        provider_id=provider_id,
        email=email,
        name=kwargs.get("name", "Face Book"),
        gender=kwargs.get("gender", "female"),
        picture=kwargs.get("picture", f"https://graph.facebook.com/{provider_id}/picture?type=large"),
        location=kwargs.get("location", "Kowloon"),
    )


async def _user(session, **fields) -> User:
    user = User(tokens=[], photos=[], **fields)
    session.add(user)
    await session.commit()
    return user


class TestAnonymousSignIn:
    async def test_creates_account_from_profile(self, test_session):
        outcome = await link_or_sign_in(test_session, _facebook(), "token-1")

        assert outcome.action == "created"
        user = outcome.user
        assert user.id is not None
        assert user.email == "fb@example.com"
        assert user.facebook == "fb-1"
        assert user.name == "Face Book"
        assert user.gender == "female"
        assert user.location == "Kowloon"
        assert user.token_for("facebook").access_token == "token-1"

    async def test_returning_member_signs_in_and_refreshes_token(self, test_session):
        existing = await _user(test_session, email="fb@example.com", facebook="fb-1")

        outcome = await link_or_sign_in(test_session, _facebook(), "token-2")

        assert outcome.action == "signed_in"
        assert outcome.user.id == existing.id
        tokens = (await test_session.execute(
            select(OAuthToken).where(OAuthToken.user_id == existing.id))).scalars().all()
        assert [t.access_token for t in tokens] == ["token-2"]

    async def test_email_taken_by_other_account(self, test_session):
        await _user(test_session, email="fb@example.com", password=hash_password("secret1"))

        with pytest.raises(AccountLinkError) as exc:
            await link_or_sign_in(test_session, _facebook(), "token-1")

        assert exc.value.message == (
            "There is already an account using this email address. Sign in to that account "
            "and link it with Facebook manually from Account Settings."
        )

    async def test_profile_without_email(self, test_session):
        outcome = await link_or_sign_in(test_session, _facebook(email=None), "token-1")
        assert outcome.action == "created"
        assert outcome.user.email is None


class TestSignedInLinking:
    async def test_links_provider_and_fills_blank_fields(self, test_session):
        member = await _user(test_session, email="me@example.com", password=hash_password("secret1"),
                             name="Me")

        outcome = await link_or_sign_in(test_session, _facebook(), "token-1", current_user=member)

        assert outcome.action == "linked"
        assert outcome.message == "Facebook account has been linked."
        assert member.facebook == "fb-1"
        # Existing values are kept
        assert member.name == "Me"
        assert member.email == "me@example.com"
        assert member.picture == "https://graph.facebook.com/fb-1/picture?type=large"

    async def test_refuses_identity_owned_by_other_account(self, test_session):
        await _user(test_session, email="owner@example.com", facebook="fb-1")
        member = await _user(test_session, email="me@example.com", password=hash_password("secret1"))

        with pytest.raises(AccountLinkError) as exc:
            await link_or_sign_in(test_session, _facebook(), "token-1", current_user=member)

        assert exc.value.message.startswith("There is already a Facebook account that belongs to you.")
        assert member.facebook is None


class TestUnlinkAndAuthorize:
    async def test_unlink_refused_for_last_sign_in_method(self, test_session):
        member = await _user(test_session, google="g-1")
        assert sign_in_methods(member) == 1

        with pytest.raises(AccountLinkError):
            await unlink_provider(test_session, member, "google")
        assert member.google == "g-1"

    async def test_unlink_with_password(self, test_session):
        member = await _user(test_session, email="me@example.com", google="g-1",
                             password=hash_password("secret1"))
        member.tokens.append(OAuthToken(kind="google", access_token="t"))
        await test_session.commit()

        message = await unlink_provider(test_session, member, "google")

        assert message == "Google account has been unlinked."
        assert member.google is None
        assert member.token_for("google") is None

    async def test_authorize_foursquare_replaces_token(self, test_session):
        member = await _user(test_session, email="me@example.com", password=hash_password("secret1"))

        await authorize_provider(test_session, member, "foursquare", "first")
        await authorize_provider(test_session, member, "foursquare", "second")

        tokens = (await test_session.execute(
            select(OAuthToken).where(OAuthToken.user_id == member.id))).scalars().all()
        assert len(tokens) == 1
        assert tokens[0].access_token == "second"
        assert member.facebook is None
