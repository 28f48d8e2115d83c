"""Validation rules of request bodies."""
from datetime import timezone

import pytest
from pydantic import ValidationError

from eventhub.schemas import (
    CommentBody,
    EventBody,
    LoginRequest,
    ProfileUpdate,
    RatingBody,
    SignupRequest,
    VenueBody,
)


def _messages(exc: ValidationError) -> dict:
    return {e["loc"][-1]: e["msg"].removeprefix("Value error, ") for e in exc.errors()}


VALID_EVENT = {
    "name": "Hiking",
    "description": "Lion Rock",
    "time": "2017-01-18 15:00:00",
    "duration": "3",
    "fee": "1000",
    "status": "upcoming",
}


class TestAccountSchemas:
    def test_signup_normalises_email(self):
        body = SignupRequest(email=" Member@Example.COM ", password="secret1", confirmPassword="secret1")
        assert body.email == "member@example.com"

    def test_signup_password_mismatch(self):
        with pytest.raises(ValidationError) as exc:
            SignupRequest(email="a@example.com", password="secret1", confirmPassword="secret2")
        assert _messages(exc.value)["confirmPassword"] == "confirmPassword does not match"

    def test_signup_missing_fields(self):
        with pytest.raises(ValidationError) as exc:
            SignupRequest()
        messages = _messages(exc.value)
        assert messages["email"] == "Email cannot be blank."
        assert messages["password"] == "Password cannot be blank."

    def test_login_short_password(self):
        with pytest.raises(ValidationError) as exc:
            LoginRequest(email="a@example.com", password="123")
        assert _messages(exc.value)["password"] == "Password must be at least 6 characters long"

    def test_login_invalid_email(self):
        with pytest.raises(ValidationError) as exc:
            LoginRequest(email="not-an-email", password="secret1")
        assert _messages(exc.value)["email"] == "Please enter a valid email address."


class TestProfileUpdate:
    def test_empty_values_are_ignored(self):
        body = ProfileUpdate(email="", name=None, website="")
        assert body.email is None
        assert body.website is None

    def test_rejects_long_name_and_bad_gender(self):
        with pytest.raises(ValidationError) as exc:
            ProfileUpdate(name="x" * 16, gender="robot")
        messages = _messages(exc.value)
        assert "name" in messages
        assert messages["gender"] == "Gender should only be one of the [male,female,other]"

    def test_phone_rules(self):
        assert ProfileUpdate(phone="12345678").phone == "12345678"
        with pytest.raises(ValidationError) as exc:
            ProfileUpdate(phone="12ab5678")
        assert _messages(exc.value)["phone"] == "Phone should only contains number"
        with pytest.raises(ValidationError):
            ProfileUpdate(phone="1234567")

    def test_website_must_be_url(self):
        assert ProfileUpdate(website="https://example.com").website == "https://example.com"
        with pytest.raises(ValidationError) as exc:
            ProfileUpdate(website="not a url")
        assert _messages(exc.value)["website"] == "Please enter a URL."


class TestEventBody:
    def test_valid_event(self):
        body = EventBody(**VALID_EVENT)
        assert body.duration == 3.0
        assert body.fee == 1000.0
        assert body.time.tzinfo == timezone.utc
        assert body.time.hour == 15

    def test_required_fields(self):
        with pytest.raises(ValidationError) as exc:
            EventBody()
        messages = _messages(exc.value)
        assert messages["name"] == "Name is required."
        assert messages["description"] == "Description is required."
        assert messages["duration"] == "Duration is required."
        assert messages["time"] == "Date is not valid. Example of valid date: 2017-01-18 15:00:00"

    def test_invalid_values(self):
        with pytest.raises(ValidationError) as exc:
            EventBody(**{**VALID_EVENT, "duration": "long", "fee": "free", "status": "someday"})
        messages = _messages(exc.value)
        assert messages["duration"] == "Duration is not valid."
        assert messages["fee"] == "Fee is not valid."
        assert messages["status"].startswith("status should be one of the value of the list")

    @pytest.mark.parametrize("value", ["inf", "-inf", "nan", "1e400", float("inf")])
    def test_non_finite_numbers(self, value):
        with pytest.raises(ValidationError) as exc:
            EventBody(**{**VALID_EVENT, "duration": value, "fee": value})
        messages = _messages(exc.value)
        assert messages["duration"] == "Duration is not valid."
        assert messages["fee"] == "Fee is not valid."

    def test_name_too_long(self):
        with pytest.raises(ValidationError):
            EventBody(**{**VALID_EVENT, "name": "n" * 26})


class TestVenueCommentRating:
    def test_venue_requires_name_and_address(self):
        with pytest.raises(ValidationError) as exc:
            VenueBody()
        messages = _messages(exc.value)
        assert messages["name"] == "Name is required."
        assert messages["address1"] == "address1 is required."

    def test_venue_lengths(self):
        with pytest.raises(ValidationError) as exc:
            VenueBody(name="Hall", address1="1 Road", city="c" * 51)
        assert "city" in _messages(exc.value)

    def test_comment_required(self):
        with pytest.raises(ValidationError) as exc:
            CommentBody(title="Hi")
        assert _messages(exc.value)["comment"] == "Comment is required."

    @pytest.mark.parametrize("value", [0, 6, "abc", 2.5, None])
    def test_rating_out_of_range(self, value):
        with pytest.raises(ValidationError) as exc:
            RatingBody(rating=value)
        assert _messages(exc.value)["rating"] == "Rating should be an integer between 1 and 5."

    def test_rating_accepts_numeric_strings(self):
        assert RatingBody(rating="4").rating == 4
