"""Event service - Business logic for event lifecycle"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional, Union

from sqlalchemy.orm import Session

from ...locking import EventLockManager, event_transaction, get_event_lock_manager
from ...models import Event, User, utcnow
from ...services.notification_service import (
    EVENT_CANCELLED,
    INVITATION_CREATED,
    DomainEvent,
    NotificationHub,
    get_notification_hub,
)
from ...services.video_conference_service import generate_meeting_link
from ...shared.exceptions import NotAuthorized, NotFound
from ...shared.validators import normalize_participants, validate_time_range
from ..invitations.policy import EventTimeUpdatePolicy
from ..scheduling.time_calculator import (
    MONDAY,
    CalendarUnit,
    TimeRange,
    compute_boundaries,
    resolve_zone,
    sanitize_timezone,
    to_local,
)
from .repository import EventRepository
from .schemas import EventCreate, EventUpdate

logger = logging.getLogger(__name__)


@dataclass
class EventListing:
    range: TimeRange
    timezone: str
    events: list[Event]


class EventService:
    """Service layer for event business logic"""

    def __init__(
        self,
        db: Session,
        lock_manager: Optional[EventLockManager] = None,
        hub: Optional[NotificationHub] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.repo = EventRepository()
        self.locks = lock_manager or get_event_lock_manager()
        self.hub = hub or get_notification_hub()
        self.policy = EventTimeUpdatePolicy(self.hub)
        self.clock = clock

    def _get_live_event(self, event_id: str) -> Event:
        event = self.repo.get_event(self.db, event_id)
        if not event or event.is_cancelled:
            raise NotFound("Event not found")
        return event

    @staticmethod
    def _ensure_organizer(event: Event, actor: User) -> None:
        if event.organizer_id != actor.id:
            raise NotAuthorized("Only the organizer can modify this event")

    def get_event(self, event_id: str, actor: User) -> Event:
        """Visible to the organizer and to invitees in any status"""
        event = self._get_live_event(event_id)
        if event.organizer_id == actor.id:
            return event
        if any(inv.recipient_email == actor.email for inv in event.invitations):
            return event
        raise NotAuthorized("User is not a participant of this event")

    def create_event(self, data: EventCreate, actor: User) -> Event:
        """Create an event with a PENDING invitation per distinct participant"""
        start, end = validate_time_range(data.startInstant, data.endInstant, "event")
        if data.organizerTimezone:
            resolve_zone(data.organizerTimezone)
            organizer_timezone = data.organizerTimezone
        else:
            organizer_timezone = sanitize_timezone(actor.timezone)
        recipients = [email for email in normalize_participants(data.participants) if email != actor.email]

        logger.info(f"📥 Creating event '{data.title}' for {actor.email} with {len(recipients)} invitee(s)")
        event = self.repo.create_event(
            self.db,
            actor.id,
            recipients,
            title=data.title,
            description=data.description,
            location=data.location,
            start_instant=start,
            end_instant=end,
            organizer_timezone=organizer_timezone,
            video_conference_link=data.videoConferenceLink or generate_meeting_link(),
        )
        logger.info(f"✅ Event {event.id} created")

        for invitation in event.invitations:
            self.hub.publish(
                DomainEvent(
                    name=INVITATION_CREATED,
                    event_id=event.id,
                    recipients=(invitation.recipient_email,),
                    payload={
                        "invitation_id": invitation.id,
                        "title": event.title,
                        "organizer": actor.email,
                        "start": start.isoformat(),
                        "end": end.isoformat(),
                        "video_conference_link": event.video_conference_link,
                    },
                )
            )
        return event

    def update_event(self, event_id: str, data: EventUpdate, actor: User) -> Event:
        """
        Organizer edit. A time change moves the event and notifies invitees;
        open proposals are left for the organizer to decide on.
        """
        event = self._get_live_event(event_id)
        self._ensure_organizer(event, actor)
        if data.organizerTimezone:
            resolve_zone(data.organizerTimezone)

        change = None
        with event_transaction(self.db, self.locks, event_id):
            event = self._get_live_event(event_id)
            start, end = validate_time_range(
                data.startInstant or event.start_instant,
                data.endInstant or event.end_instant,
                "event",
            )
            if data.title is not None:
                event.title = data.title
            if data.description is not None:
                event.description = data.description
            if data.location is not None:
                event.location = data.location
            if data.organizerTimezone:
                event.organizer_timezone = data.organizerTimezone
            if data.videoConferenceLink is not None:
                event.video_conference_link = data.videoConferenceLink
            elif not event.video_conference_link:
                event.video_conference_link = generate_meeting_link(event.id)
            if (start, end) != (event.start_instant, event.end_instant):
                change = self.policy.apply_organizer_edit(event, start, end)

        self.db.refresh(event)
        logger.info(f"✅ Event {event_id} updated by organizer")
        if change is not None:
            self.policy.notify(event, change)
        return event

    def delete_event(self, event_id: str, actor: User) -> Event:
        """Tombstone the event; invitations stay for history"""
        event = self._get_live_event(event_id)
        self._ensure_organizer(event, actor)

        with event_transaction(self.db, self.locks, event_id):
            event = self._get_live_event(event_id)
            event.deleted_at = self.clock()

        self.db.refresh(event)
        logger.info(f"🗑️ Event {event_id} cancelled by organizer")
        self.hub.publish(
            DomainEvent(
                name=EVENT_CANCELLED,
                event_id=event.id,
                recipients=tuple(inv.recipient_email for inv in event.invitations),
                payload={
                    "title": event.title,
                    "start": event.start_instant.isoformat(),
                    "end": event.end_instant.isoformat(),
                },
            )
        )
        return event

    def list_events(
        self,
        actor: User,
        unit: Union[CalendarUnit, str, None] = CalendarUnit.WEEK,
        reference_date: Union[date, datetime, None] = None,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None,
        viewer_timezone: Optional[str] = None,
        week_start_day: int = MONDAY,
    ) -> EventListing:
        """
        Events the actor organizes or is invited to within an explicit range,
        or within the day/week/month containing ``reference_date`` as seen in
        the viewer's timezone.
        """
        tz = sanitize_timezone(viewer_timezone, actor.timezone)
        if range_start is not None or range_end is not None:
            window = TimeRange(*validate_time_range(range_start, range_end, "calendar range"))
        else:
            reference = reference_date or to_local(self.clock(), tz).date()
            window = compute_boundaries(unit or CalendarUnit.WEEK, reference, tz, week_start_day)

        events = self.repo.get_visible_events(self.db, actor.id, actor.email, window.start, window.end)
        logger.info(
            f"📅 {len(events)} event(s) for {actor.email} between "
            f"{window.start.isoformat()} and {window.end.isoformat()} ({tz})"
        )
        return EventListing(range=window, timezone=tz, events=events)
