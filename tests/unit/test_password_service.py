from eventhub.models import User
from eventhub.services.password_service import authenticate_local, hash_password, verify_password


def test_hash_and_verify():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)


def test_missing_or_invalid_hash_never_verifies():
    assert not verify_password("secret123", None)
    assert not verify_password("secret123", "plain-text")


async def test_authenticate_local(test_session):
    test_session.add(User(email="me@example.com", password=hash_password("secret123"),
                          tokens=[], photos=[]))
    await test_session.commit()

    user = await authenticate_local(test_session, "ME@example.com", "secret123")
    assert user is not None and user.email == "me@example.com"
    assert await authenticate_local(test_session, "me@example.com", "nope") is None
    assert await authenticate_local(test_session, "nobody@example.com", "secret123") is None


async def test_oauth_only_account_cannot_use_password(test_session):
    test_session.add(User(email="fb@example.com", facebook="fb-1", tokens=[], photos=[]))
    await test_session.commit()

    assert await authenticate_local(test_session, "fb@example.com", "anything") is None
