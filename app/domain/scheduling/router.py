"""Scheduling router - Availability and calendar boundary endpoints"""

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...config import AVAILABILITY_RATE_LIMIT, AVAILABILITY_RATE_WINDOW_SECONDS
from ...database import get_db
from ...models import User, utcnow
from ...rate_limiter import create_rate_limiter
from .availability_service import AvailabilityService
from .schemas import (
    AvailabilityCheckRequest,
    AvailabilityCheckResponse,
    AvailabilitySearchRequest,
    AvailabilitySearchResponse,
    BoundariesResponse,
    CollaboratorResponse,
    ConflictResponse,
    ParticipantAvailabilityResponse,
    ParticipantStatusResponse,
    SlotResponse,
)
from .time_calculator import MONDAY, CalendarUnit, compute_boundaries, sanitize_timezone, to_local

logger = logging.getLogger(__name__)

rate_limit_availability = create_rate_limiter(
    limit=AVAILABILITY_RATE_LIMIT,
    window_seconds=AVAILABILITY_RATE_WINDOW_SECONDS,
    key_prefix="availability",
)

router = APIRouter(
    prefix="/availability", tags=["Availability"], dependencies=[Depends(rate_limit_availability)]
)
calendar_router = APIRouter(prefix="/calendar", tags=["Calendar"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


def _slot(slot) -> SlotResponse:
    return SlotResponse(startTime=slot.start, endTime=slot.end, score=slot.score)


@router.post("/check", response_model=AvailabilityCheckResponse)
async def check_availability(
    data: AvailabilityCheckRequest,
    current_user: User = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Per-participant availability for a proposed meeting time"""
    results = service.check_availability(data.participantEmails, data.startDateTime, data.endDateTime)
    return AvailabilityCheckResponse(
        availability=[
            ParticipantAvailabilityResponse(
                participantEmail=r.participant,
                participantName=r.display_name,
                isAvailable=r.is_available,
                userFound=r.user_found,
                conflicts=[
                    ConflictResponse(
                        eventId=c.event_id,
                        title=c.title,
                        startDateTime=c.start,
                        endDateTime=c.end,
                        location=c.location,
                    )
                    for c in r.conflicts
                ],
                suggestedSlots=[_slot(s) for s in r.suggested_slots],
            )
            for r in results
        ]
    )


@router.post("", response_model=AvailabilitySearchResponse)
async def find_meeting_slots(
    data: AvailabilitySearchRequest,
    current_user: User = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Ranked common free slots; an empty list when nobody overlaps"""
    result = service.find_meeting_slots(
        data.participantEmails,
        data.startRange,
        data.endRange,
        data.durationMinutes,
        step_minutes=data.stepMinutes,
        limit=data.limit,
        timezone=sanitize_timezone(data.timezone, current_user.timezone),
    )
    return AvailabilitySearchResponse(
        suggestions=[_slot(s) for s in result.slots],
        participants=[
            ParticipantStatusResponse(
                email=p.email,
                status=p.status.value,
                displayName=p.display_name,
                timezone=p.timezone,
            )
            for p in result.participants
        ],
        timezone=result.timezone,
        truncated=result.truncated,
    )


@router.get("/collaborators", response_model=list[CollaboratorResponse])
async def get_collaborators(
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    """People the current user invites most often"""
    return [
        CollaboratorResponse(
            email=c["email"],
            displayName=c["display_name"],
            timezone=c["timezone"],
            collaborationCount=c["invitation_count"],
        )
        for c in service.suggest_collaborators(current_user, limit)
    ]


@calendar_router.get("/boundaries", response_model=BoundariesResponse)
async def get_boundaries(
    unit: CalendarUnit = Query(CalendarUnit.DAY),
    date_: Optional[date] = Query(None, alias="date"),
    timezone: Optional[str] = Query(None),
    weekStartDay: int = Query(MONDAY, ge=0, le=6),
    current_user: User = Depends(get_current_user),
):
    """UTC instants bounding a local day/week/month; an explicit unknown timezone is rejected"""
    tz = timezone or sanitize_timezone(None, current_user.timezone)
    reference = date_ or to_local(utcnow(), tz).date()
    bounds = compute_boundaries(unit, reference, tz, weekStartDay)
    return BoundariesResponse(
        unit=unit.value,
        referenceDate=reference,
        timezone=tz,
        start=bounds.start,
        end=bounds.end,
        durationHours=bounds.duration / timedelta(hours=1),
        dstTransition=unit == CalendarUnit.DAY and bounds.duration != timedelta(hours=24),
    )
