import math
from datetime import datetime, timezone
from typing import Annotated, List, Optional
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .models import EVENT_STATUSES, GENDERS
from .utils import is_digits


def _check_email(value: Optional[str]) -> str:
    value = str(value or "").strip()
    if not value:
        raise ValueError("Email cannot be blank.")
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise ValueError("Please enter a valid email address.")
    return value.lower()


def _check_password(value: Optional[str]) -> str:
    if not value:
        raise ValueError("Password cannot be blank.")
    if not 6 <= len(value) <= 100:
        raise ValueError("Password must be at least 6 characters long")
    return value


def _check_phone(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    value = str(value)
    if not is_digits(value):
        raise ValueError("Phone should only contains number")
    if not 8 <= len(value) <= 11:
        raise ValueError("The length of phone should be between 8 and 11 characters")
    return value


def _check_max_length(value: Optional[str], limit: int, label: str) -> Optional[str]:
    if value is not None and len(value) > limit:
        raise ValueError(f"The length of {label} should not exceed {limit} characters.")
    return value


# Accounts

EmailField = Annotated[str, AfterValidator(_check_email)]
PasswordField = Annotated[str, AfterValidator(_check_password)]


class PasswordChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: PasswordField = Field("", validate_default=True)
    confirm_password: str = Field("", alias="confirmPassword", validate_default=True)

    @field_validator("confirm_password")
    @classmethod
    def _passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if not value:
            raise ValueError("Password cannot be blank.")
        if value != info.data.get("password"):
            raise ValueError("confirmPassword does not match")
        return value


class SignupRequest(PasswordChange):
    email: EmailField = Field("", validate_default=True, examples=["member@example.com"])


class ForgotRequest(BaseModel):
    email: EmailField = Field("", validate_default=True)


class LoginRequest(BaseModel):
    email: EmailField = Field("", validate_default=True, examples=["member@example.com"])
    password: PasswordField = Field("", validate_default=True)


class ContactRequest(BaseModel):
    name: str = Field("", validate_default=True)
    email: EmailField = Field("", validate_default=True)
    message: str = Field("", validate_default=True)

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name cannot be blank.")
        return _check_max_length(value, 100, "name")

    @field_validator("message")
    @classmethod
    def _message_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message cannot be blank.")
        return _check_max_length(value, 5000, "message")


class AuthResult(BaseModel):
    token: str
    id: int


# Profiles

class ProfileUpdate(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    gender: Optional[str] = None
    location: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    avatar: Optional[int] = None

    @field_validator("email")
    @classmethod
    def _email_valid(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        return _check_email(value)

    @field_validator("name")
    @classmethod
    def _name_length(cls, value: Optional[str]) -> Optional[str]:
        return _check_max_length(value, 15, "name")

    @field_validator("gender")
    @classmethod
    def _gender_known(cls, value: Optional[str]) -> Optional[str]:
        if value and value not in GENDERS:
            raise ValueError(f"Gender should only be one of the [{','.join(GENDERS)}]")
        return value or None

    @field_validator("location")
    @classmethod
    def _location_length(cls, value: Optional[str]) -> Optional[str]:
        return _check_max_length(value, 150, "location")

    @field_validator("phone", mode="before")
    @classmethod
    def _phone_digits(cls, value):
        return _check_phone(value)

    @field_validator("website")
    @classmethod
    def _website_url(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        parsed = urlparse(value if "://" in value else f"http://{value}")
        if parsed.scheme not in ("http", "https") or "." not in (parsed.netloc or ""):
            raise ValueError("Please enter a URL.")
        return _check_max_length(value, 200, "website")


class PhotoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    photo_url: str
    highres_url: str


class ProfileResponse(BaseModel):
    name: Optional[str] = None
    gender: Optional[str] = None
    location: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    picture: Optional[str] = None
    avatar: Optional[PhotoResponse] = None
    photos: List[PhotoResponse] = []


class HostResponse(BaseModel):
    id: int
    name: Optional[str] = None
    gender: Optional[str] = None
    location: Optional[str] = None
    avatar: Optional[PhotoResponse] = None


# Events

class EventBody(BaseModel):
    name: str = Field("", validate_default=True, examples=["Hiking at Lion Rock"])
    description: str = Field("", validate_default=True)
    time: Optional[datetime] = Field(None, validate_default=True, examples=["2017-01-18 15:00:00"])
    duration: Optional[float] = Field(None, validate_default=True, examples=[3])
    fee: Optional[float] = Field(None, validate_default=True, examples=[100])
    status: str = Field("", validate_default=True, examples=["upcoming"])

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Name is required.")
        return _check_max_length(value, 25, "name")

    @field_validator("description")
    @classmethod
    def _description_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Description is required.")
        return _check_max_length(value, 200, "description")

    @field_validator("time", mode="before")
    @classmethod
    def _parse_time(cls, value):
        if not isinstance(value, datetime):
            try:
                value = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
            except (TypeError, ValueError):
                raise ValueError("Date is not valid. Example of valid date: 2017-01-18 15:00:00")
        # Naive times are taken as UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("duration", mode="before")
    @classmethod
    def _duration_numeric(cls, value):
        if value is None or value == "":
            raise ValueError("Duration is required.")
        try:
            hours = float(value)
        except (TypeError, ValueError):
            raise ValueError("Duration is not valid.")
        if not math.isfinite(hours) or hours < 0:
            raise ValueError("Duration is not valid.")
        return hours

    @field_validator("fee", mode="before")
    @classmethod
    def _fee_numeric(cls, value):
        try:
            fee = float(value)
        except (TypeError, ValueError):
            raise ValueError("Fee is not valid.")
        if not math.isfinite(fee) or fee < 0:
            raise ValueError("Fee is not valid.")
        return fee

    @field_validator("status")
    @classmethod
    def _status_known(cls, value: str) -> str:
        if value not in EVENT_STATUSES:
            raise ValueError(
                f"status should be one of the value of the list {','.join(EVENT_STATUSES)}.")
        return value


class VenueBody(BaseModel):
    name: str = Field("", validate_default=True)
    address1: str = Field("", validate_default=True)
    address2: Optional[str] = None
    address3: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lon: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Name is required.")
        return _check_max_length(value, 25, "name")

    @field_validator("address1")
    @classmethod
    def _address_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("address1 is required.")
        return _check_max_length(value, 100, "address1")

    @field_validator("address2", "address3")
    @classmethod
    def _address_length(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        return _check_max_length(value, 100, info.field_name)

    @field_validator("city", "country")
    @classmethod
    def _place_length(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        return _check_max_length(value, 50, info.field_name)

    @field_validator("phone", mode="before")
    @classmethod
    def _phone_digits(cls, value):
        return _check_phone(value)


class VenueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address1: str
    address2: Optional[str] = None
    address3: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None


class CommentBody(BaseModel):
    title: Optional[str] = None
    comment: str = Field("", validate_default=True)

    @field_validator("title")
    @classmethod
    def _title_length(cls, value: Optional[str]) -> Optional[str]:
        return _check_max_length(value, 50, "title")

    @field_validator("comment")
    @classmethod
    def _comment_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Comment is required.")
        return _check_max_length(value, 500, "comment")


class CommentResponse(BaseModel):
    id: int
    title: Optional[str] = None
    comment: str
    member: HostResponse
    created_at: Optional[datetime] = None


class RatingBody(BaseModel):
    rating: Optional[int] = Field(None, validate_default=True)

    @field_validator("rating", mode="before")
    @classmethod
    def _rating_range(cls, value):
        try:
            rating = int(value)
        except (TypeError, ValueError):
            raise ValueError("Rating should be an integer between 1 and 5.")
        if str(value).strip() != str(rating) or not 1 <= rating <= 5:
            raise ValueError("Rating should be an integer between 1 and 5.")
        return rating


class RatingSummary(BaseModel):
    average: Optional[float] = None
    count: int = 0
    mine: Optional[int] = None


class EventResponse(BaseModel):
    id: int
    name: str
    description: str
    time: datetime
    time_display: Optional[str] = None
    duration_hours: float
    duration: str
    fee: int
    fee_display: str
    status: str
    hosts: List[HostResponse] = []
    photos: List[PhotoResponse] = []
    venue: Optional[VenueResponse] = None
    attendee_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EventDetailResponse(EventResponse):
    attendees: List[HostResponse] = []
    comments: List[CommentResponse] = []
    rating: RatingSummary = RatingSummary()
