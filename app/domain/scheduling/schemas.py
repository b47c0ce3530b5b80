"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel

from ...config import SLOT_STEP_MINUTES


class AvailabilityCheckRequest(BaseModel):
    """Is each participant free for one proposed meeting?"""

    participantEmails: list[str] = []
    startDateTime: Optional[datetime] = None
    endDateTime: Optional[datetime] = None


class AvailabilitySearchRequest(BaseModel):
    """Find common free slots for a group"""

    participantEmails: list[str] = []
    startRange: Optional[datetime] = None
    endRange: Optional[datetime] = None
    durationMinutes: int
    stepMinutes: int = SLOT_STEP_MINUTES
    limit: Optional[int] = None
    timezone: Optional[str] = None


class SlotResponse(BaseModel):
    startTime: datetime
    endTime: datetime
    score: float


class ConflictResponse(BaseModel):
    eventId: Optional[str] = None
    title: Optional[str] = None
    startDateTime: datetime
    endDateTime: datetime
    location: Optional[str] = None


class ParticipantAvailabilityResponse(BaseModel):
    participantEmail: str
    participantName: Optional[str] = None
    isAvailable: bool
    userFound: bool
    conflicts: list[ConflictResponse] = []
    suggestedSlots: list[SlotResponse] = []


class AvailabilityCheckResponse(BaseModel):
    availability: list[ParticipantAvailabilityResponse]


class ParticipantStatusResponse(BaseModel):
    email: str
    status: str
    displayName: Optional[str] = None
    timezone: Optional[str] = None


class AvailabilitySearchResponse(BaseModel):
    suggestions: list[SlotResponse]
    participants: list[ParticipantStatusResponse]
    timezone: str
    truncated: bool = False


class CollaboratorResponse(BaseModel):
    email: str
    displayName: Optional[str] = None
    timezone: Optional[str] = None
    collaborationCount: int


class BoundariesResponse(BaseModel):
    unit: str
    referenceDate: date
    timezone: str
    start: datetime
    end: datetime
    durationHours: float
    dstTransition: bool
