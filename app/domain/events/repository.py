"""Event repository - Database operations for events"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ...models import Event, Invitation, InvitationStatus


class EventRepository:
    """Repository for event database operations"""

    @staticmethod
    def get_event(db: Session, event_id: str) -> Optional[Event]:
        return (
            db.query(Event)
            .options(selectinload(Event.invitations))
            .filter(Event.id == event_id)
            .first()
        )

    @staticmethod
    def create_event(db: Session, organizer_id: str, recipients: list[str], **kwargs) -> Event:
        """Create an event and one PENDING invitation per recipient in one commit"""
        event = Event(organizer_id=organizer_id, **kwargs)
        db.add(event)
        db.flush()
        for email in recipients:
            db.add(
                Invitation(
                    event_id=event.id,
                    recipient_email=email,
                    status=InvitationStatus.PENDING.value,
                )
            )
        db.commit()
        db.refresh(event)
        return event

    @staticmethod
    def get_visible_events(
        db: Session, user_id: str, email: str, start: datetime, end: datetime
    ) -> list[Event]:
        """
        Non-cancelled events overlapping [start, end) that the user organizes
        or is invited to (any status).
        """
        invited = db.query(Invitation.event_id).filter(Invitation.recipient_email == email)
        return (
            db.query(Event)
            .options(selectinload(Event.invitations))
            .filter(
                or_(Event.organizer_id == user_id, Event.id.in_(invited)),
                Event.deleted_at.is_(None),
                Event.start_instant < end,
                Event.end_instant > start,
            )
            .order_by(Event.start_instant, Event.id)
            .all()
        )
