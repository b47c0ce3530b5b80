"""Event domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ..scheduling.time_calculator import timezone_offset, to_local

MAX_LINK_LENGTH = 500


def check_meeting_link(v):
    """Blank means no link; anything else must be an http(s) URL"""
    if v is None:
        return v
    v = v.strip()
    if not v:
        return None
    if not v.startswith(("https://", "http://")):
        raise ValueError("Video conference link must be an http(s) URL")
    if len(v) > MAX_LINK_LENGTH:
        raise ValueError(f"Video conference link cannot exceed {MAX_LINK_LENGTH} characters")
    return v


class EventCreate(BaseModel):
    """Schema for creating a new event"""

    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    startInstant: datetime
    endInstant: datetime
    organizerTimezone: Optional[str] = None
    participants: list[str] = []
    videoConferenceLink: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("Title is required")
        if len(v) > 120:
            raise ValueError("Title cannot exceed 120 characters")
        return v

    @field_validator("location")
    @classmethod
    def validate_location(cls, v):
        if v and len(v) > 200:
            raise ValueError("Location cannot exceed 200 characters")
        return v

    @field_validator("videoConferenceLink")
    @classmethod
    def validate_video_conference_link(cls, v):
        return check_meeting_link(v)


class EventUpdate(BaseModel):
    """Schema for updating an existing event"""

    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    startInstant: Optional[datetime] = None
    endInstant: Optional[datetime] = None
    organizerTimezone: Optional[str] = None
    videoConferenceLink: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be blank")
        if len(v) > 120:
            raise ValueError("Title cannot exceed 120 characters")
        return v

    @field_validator("location")
    @classmethod
    def validate_location(cls, v):
        if v and len(v) > 200:
            raise ValueError("Location cannot exceed 200 characters")
        return v

    @field_validator("videoConferenceLink")
    @classmethod
    def validate_video_conference_link(cls, v):
        return check_meeting_link(v)


class EventInvitationInfo(BaseModel):
    id: str
    recipientEmail: str
    status: str
    proposedStart: Optional[datetime] = None
    proposedEnd: Optional[datetime] = None


class EventResponse(BaseModel):
    """Schema for event response

    Instants are UTC; ``localStart``/``localEnd`` render them in the
    viewer's timezone.
    """

    id: str
    organizerId: str
    organizerEmail: Optional[str] = None
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    startInstant: datetime
    endInstant: datetime
    organizerTimezone: str
    viewerTimezone: str
    localStart: datetime
    localEnd: datetime
    utcOffset: str
    videoConferenceLink: Optional[str] = None
    cancelled: bool = False
    version: int
    invitations: Optional[list[EventInvitationInfo]] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_event(cls, event, viewer_timezone: str, include_invitations: bool = False) -> "EventResponse":
        invitations = None
        if include_invitations:
            invitations = [
                EventInvitationInfo(
                    id=inv.id,
                    recipientEmail=inv.recipient_email,
                    status=inv.status,
                    proposedStart=inv.proposed_start,
                    proposedEnd=inv.proposed_end,
                )
                for inv in event.invitations
            ]
        return cls(
            id=event.id,
            organizerId=event.organizer_id,
            organizerEmail=event.organizer.email if event.organizer else None,
            title=event.title,
            description=event.description,
            location=event.location,
            startInstant=event.start_instant,
            endInstant=event.end_instant,
            organizerTimezone=event.organizer_timezone,
            viewerTimezone=viewer_timezone,
            localStart=to_local(event.start_instant, viewer_timezone),
            localEnd=to_local(event.end_instant, viewer_timezone),
            utcOffset=timezone_offset(event.start_instant, viewer_timezone),
            videoConferenceLink=event.video_conference_link,
            cancelled=event.is_cancelled,
            version=event.version,
            invitations=invitations,
        )


class EventListResponse(BaseModel):
    rangeStart: datetime
    rangeEnd: datetime
    timezone: str
    events: list[EventResponse]
