import hashlib
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

EVENT_STATUSES = ("cancelled", "upcoming", "past", "proposed", "suggested", "draft")
GENDERS = ("male", "female", "other")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


event_hosts = Table(
    "event_hosts",
    Base.metadata,
    Column("event_id", Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

event_attendees = Table(
    "event_attendees",
    Base.metadata,
    Column("event_id", Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("joined_at", DateTime(timezone=True), default=utcnow),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    # Nullable for accounts created from a provider that shares no email
    email = Column(String, unique=True, index=True, nullable=True)
    password = Column(String, nullable=True)
    password_reset_token = Column(String, unique=True, index=True, nullable=True)
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)

    # Linked provider account ids
    facebook = Column(String, unique=True, index=True, nullable=True)
    google = Column(String, unique=True, index=True, nullable=True)

    is_admin = Column(Boolean, default=False, nullable=False)

    # Profile
    name = Column(String, nullable=True)
    gender = Column(String, nullable=False, default="male")
    location = Column(String, nullable=False, default="Hong Kong")
    phone = Column(String, nullable=True)
    website = Column(String, nullable=True)
    picture = Column(String, nullable=True)
    avatar_id = Column(
        Integer,
        ForeignKey("photos.id", use_alter=True, name="fk_users_avatar_id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    tokens = relationship(
        "OAuthToken", back_populates="user", cascade="all, delete-orphan", lazy="selectin")
    photos = relationship(
        "Photo",
        back_populates="user",
        foreign_keys="Photo.user_id",
        cascade="all, delete-orphan",
        order_by="Photo.id",
        lazy="selectin",
    )
    avatar = relationship("Photo", foreign_keys=[avatar_id], post_update=True, lazy="selectin")
    events = relationship(
        "Event", secondary=event_hosts, back_populates="hosts", order_by="Event.id")
    joined_events = relationship(
        "Event", secondary=event_attendees, back_populates="attendees", order_by="Event.id")
    comments = relationship("EventComment", back_populates="member", cascade="all, delete-orphan")
    ratings = relationship("EventRating", back_populates="member", cascade="all, delete-orphan")

    def gravatar(self, size: int = 200) -> str:
        if not self.email:
            return f"https://gravatar.com/avatar/?s={size}&d=retro"
        digest = hashlib.md5(self.email.encode("utf-8")).hexdigest()
        return f"https://gravatar.com/avatar/{digest}?s={size}&d=retro"

    def token_for(self, kind: str):
        for token in self.tokens:
            if token.kind == kind:
                return token
        return None


class OAuthToken(Base):
    __tablename__ = "oauth_tokens"
    __table_args__ = (UniqueConstraint("user_id", "kind", name="uq_oauth_token_user_kind"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(String, nullable=False)  # facebook|google|foursquare
    access_token = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    user = relationship("User", back_populates="tokens")


class Photo(Base):
    __tablename__ = "photos"

    id = Column(Integer, primary_key=True, index=True)
    photo_url = Column(String, nullable=False)
    highres_url = Column(String, nullable=False)
    base_url = Column(String, nullable=True)
    kind = Column(String, nullable=False, default="member")  # member|event
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    user = relationship("User", back_populates="photos", foreign_keys=[user_id])
    event = relationship("Event", back_populates="photos")


class Venue(Base):
    __tablename__ = "venues"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    address1 = Column(String, nullable=False)
    address2 = Column(String, nullable=True)
    address3 = Column(String, nullable=True)
    city = Column(String, nullable=True)
    country = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    lat = Column(Float, nullable=True)
    lon = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    events = relationship("Event", back_populates="venue")


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    time = Column(DateTime(timezone=True), nullable=False)
    duration_hours = Column(Float, nullable=False)
    fee = Column(Integer, nullable=False, default=0)
    # cancelled|upcoming|past|proposed|suggested|draft
    status = Column(String, nullable=False, default="upcoming", index=True)
    venue_id = Column(Integer, ForeignKey("venues.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    hosts = relationship(
        "User", secondary=event_hosts, back_populates="events", order_by="User.id", lazy="selectin")
    attendees = relationship(
        "User", secondary=event_attendees, back_populates="joined_events", order_by="User.id",
        lazy="selectin")
    photos = relationship(
        "Photo", back_populates="event", cascade="all, delete-orphan", order_by="Photo.id",
        lazy="selectin")
    venue = relationship("Venue", back_populates="events", lazy="selectin")
    comments = relationship(
        "EventComment", back_populates="event", cascade="all, delete-orphan",
        order_by="EventComment.id")
    ratings = relationship("EventRating", back_populates="event", cascade="all, delete-orphan")

    def is_hosted_by(self, member_id: int) -> bool:
        return any(host.id == member_id for host in self.hosts)


class EventComment(Base):
    __tablename__ = "event_comments"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=True)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    event = relationship("Event", back_populates="comments")
    member = relationship("User", back_populates="comments", lazy="selectin")


class EventRating(Base):
    __tablename__ = "event_ratings"
    __table_args__ = (UniqueConstraint("event_id", "member_id", name="uq_event_rating_member"),)

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    event = relationship("Event", back_populates="ratings")
    member = relationship("User", back_populates="ratings")
