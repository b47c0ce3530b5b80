import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


def generate_public_id():
    """Generate a unique identifier for users, events and invitations"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Stores naive UTC, returns timezone-aware UTC. Naive input is taken as UTC."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class InvitationStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    PROPOSED = "PROPOSED"
    SUPERSEDED = "SUPERSEDED"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    email = Column(String(320), unique=True, index=True, nullable=False)  # Stored lower-case
    display_name = Column(String(100), nullable=False)
    timezone = Column(String(50), nullable=False, default="UTC")  # IANA zone id
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    organized_events = relationship("Event", back_populates="organizer")


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    organizer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(200), nullable=True)

    # Absolute instants; start < end is enforced by the services
    start_instant = Column(UTCDateTime, nullable=False, index=True)
    end_instant = Column(UTCDateTime, nullable=False, index=True)
    organizer_timezone = Column(String(50), nullable=False, default="UTC")  # Display only
    video_conference_link = Column(String(500), nullable=True)

    # Tombstone: set when the organizer cancels the event
    deleted_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Optimistic locking: every UPDATE checks and bumps this counter
    version = Column(Integer, nullable=False, default=1)

    organizer = relationship("User", back_populates="organized_events")
    invitations = relationship(
        "Invitation", back_populates="event", order_by="Invitation.created_at"
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_cancelled(self) -> bool:
        return self.deleted_at is not None


class Invitation(Base):
    __tablename__ = "invitations"
    __table_args__ = (
        UniqueConstraint("event_id", "recipient_email", name="uq_invitation_event_recipient"),
    )

    id = Column(String(36), primary_key=True, default=generate_public_id)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    recipient_email = Column(String(320), nullable=False, index=True)  # Stored lower-case

    # PENDING -> ACCEPTED | DECLINED | PROPOSED
    # PROPOSED -> ACCEPTED (organizer accepts) | DECLINED (organizer rejects) | SUPERSEDED
    status = Column(String(20), nullable=False, default=InvitationStatus.PENDING.value, index=True)

    # Counter-offer, only meaningful while PROPOSED (kept afterwards for audit)
    proposed_start = Column(UTCDateTime, nullable=True)
    proposed_end = Column(UTCDateTime, nullable=True)
    response_note = Column(String(500), nullable=True)
    responded_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)
    version = Column(Integer, nullable=False, default=1)

    event = relationship("Event", back_populates="invitations")

    __mapper_args__ = {"version_id_col": version}
