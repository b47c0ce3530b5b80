"""Event router - FastAPI endpoints for event operations"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ..invitations.router import get_invitation_service
from ..invitations.schemas import InvitationResponse, InvitationSummaryResponse
from ..invitations.service import InvitationService
from ..scheduling.time_calculator import MONDAY, CalendarUnit, sanitize_timezone
from .schemas import EventCreate, EventListResponse, EventResponse, EventUpdate
from .service import EventService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["Events"])


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    """Dependency injection for EventService"""
    return EventService(db)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=EventListResponse)
async def list_events(
    unit: CalendarUnit = Query(CalendarUnit.WEEK),
    date_: Optional[date] = Query(None, alias="date"),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    timezone: Optional[str] = Query(None),
    weekStartDay: int = Query(MONDAY, ge=0, le=6),
    includeInvitations: bool = Query(False),
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Events in the day/week/month around ``date`` or in an explicit range"""
    listing = service.list_events(
        current_user,
        unit=unit,
        reference_date=date_,
        range_start=start,
        range_end=end,
        viewer_timezone=timezone,
        week_start_day=weekStartDay,
    )
    return EventListResponse(
        rangeStart=listing.range.start,
        rangeEnd=listing.range.end,
        timezone=listing.timezone,
        events=[
            EventResponse.from_event(e, listing.timezone, include_invitations=includeInvitations)
            for e in listing.events
        ],
    )


@router.post("", response_model=EventResponse, status_code=201)
async def create_event(
    data: EventCreate,
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Create an event and invite its participants"""
    event = service.create_event(data, current_user)
    viewer_tz = sanitize_timezone(None, current_user.timezone)
    return EventResponse.from_event(event, viewer_tz, include_invitations=True)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str,
    timezone: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Get a specific event; invitation details are shown to the organizer only"""
    event = service.get_event(event_id, current_user)
    viewer_tz = sanitize_timezone(timezone, current_user.timezone)
    return EventResponse.from_event(
        event, viewer_tz, include_invitations=event.organizer_id == current_user.id
    )


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: str,
    data: EventUpdate,
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Update an event (organizer only)"""
    event = service.update_event(event_id, data, current_user)
    viewer_tz = sanitize_timezone(None, current_user.timezone)
    return EventResponse.from_event(event, viewer_tz, include_invitations=True)


@router.delete("/{event_id}")
async def delete_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Cancel an event (organizer only)"""
    event = service.delete_event(event_id, current_user)
    return {"message": "Event cancelled successfully", "id": event.id}


# ============================================================================
# INVITATIONS OF AN EVENT
# ============================================================================


@router.get("/{event_id}/invitations", response_model=list[InvitationResponse])
async def get_event_invitations(
    event_id: str,
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    invitations = service.get_event_invitations(event_id, current_user)
    return [InvitationResponse.from_invitation(inv) for inv in invitations]


@router.get("/{event_id}/invitations/summary", response_model=InvitationSummaryResponse)
async def get_event_invitation_summary(
    event_id: str,
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """Counts of invitations per status"""
    return InvitationSummaryResponse(**service.get_event_summary(event_id, current_user))


@router.get("/{event_id}/proposals", response_model=list[InvitationResponse])
async def get_event_proposals(
    event_id: str,
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """Open time proposals awaiting the organizer's decision"""
    invitations = service.get_event_proposals(event_id, current_user)
    return [InvitationResponse.from_invitation(inv) for inv in invitations]
