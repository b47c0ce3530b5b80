"""Invitation repository - Database operations for invitations"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Event, Invitation, InvitationStatus


class InvitationRepository:
    """Repository for invitation database operations"""

    @staticmethod
    def get_invitation(db: Session, invitation_id: str) -> Optional[Invitation]:
        return (
            db.query(Invitation)
            .options(joinedload(Invitation.event))
            .filter(Invitation.id == invitation_id)
            .first()
        )

    @staticmethod
    def get_event(db: Session, event_id: str) -> Optional[Event]:
        return db.query(Event).filter(Event.id == event_id).first()

    @staticmethod
    def get_event_invitations(db: Session, event_id: str) -> list[Invitation]:
        return (
            db.query(Invitation)
            .filter(Invitation.event_id == event_id)
            .order_by(Invitation.created_at, Invitation.recipient_email)
            .all()
        )

    @staticmethod
    def get_event_invitations_by_status(
        db: Session, event_id: str, status: InvitationStatus
    ) -> list[Invitation]:
        return (
            db.query(Invitation)
            .filter(Invitation.event_id == event_id, Invitation.status == status.value)
            .order_by(Invitation.responded_at, Invitation.recipient_email)
            .all()
        )

    @staticmethod
    def get_user_invitations(
        db: Session, email: str, status: Optional[InvitationStatus] = None
    ) -> list[Invitation]:
        """Invitations addressed to ``email`` on events that are not cancelled"""
        query = (
            db.query(Invitation)
            .join(Event, Event.id == Invitation.event_id)
            .options(joinedload(Invitation.event))
            .filter(Invitation.recipient_email == email, Event.deleted_at.is_(None))
        )
        if status is not None:
            query = query.filter(Invitation.status == status.value)
        return query.order_by(Event.start_instant).all()

    @staticmethod
    def get_pending_starting_between(db: Session, start: datetime, end: datetime) -> list[Invitation]:
        """PENDING invitations whose live event starts in (start, end)"""
        return (
            db.query(Invitation)
            .join(Event, Event.id == Invitation.event_id)
            .options(joinedload(Invitation.event))
            .filter(
                Invitation.status == InvitationStatus.PENDING.value,
                Event.deleted_at.is_(None),
                Event.start_instant > start,
                Event.start_instant < end,
            )
            .order_by(Event.start_instant)
            .all()
        )
