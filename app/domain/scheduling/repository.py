"""Scheduling repository - Read-only queries behind availability search"""

from datetime import datetime
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Event, Invitation, InvitationStatus, User
from .conflict_index import BusyInterval


class SchedulingRepository:
    """Repository for availability lookups"""

    @staticmethod
    def get_users_by_emails(db: Session, emails: Iterable[str]) -> dict[str, User]:
        """Registered users keyed by lower-case email"""
        emails = list(emails)
        if not emails:
            return {}
        users = db.query(User).filter(User.email.in_(emails)).all()
        return {u.email: u for u in users}

    @staticmethod
    def get_busy_intervals(
        db: Session, user: User, start: datetime, end: datetime
    ) -> list[BusyInterval]:
        """
        Busy intervals of ``user`` overlapping [start, end): non-cancelled
        events they organize plus non-cancelled events whose invitation they
        ACCEPTED.
        """
        organized = (
            db.query(Event)
            .filter(
                Event.organizer_id == user.id,
                Event.deleted_at.is_(None),
                Event.start_instant < end,
                Event.end_instant > start,
            )
            .all()
        )
        accepted = (
            db.query(Event)
            .join(Invitation, Invitation.event_id == Event.id)
            .filter(
                Invitation.recipient_email == user.email,
                Invitation.status == InvitationStatus.ACCEPTED.value,
                Event.deleted_at.is_(None),
                Event.start_instant < end,
                Event.end_instant > start,
            )
            .all()
        )

        seen = set()
        intervals = []
        for event in [*organized, *accepted]:
            if event.id in seen:
                continue
            seen.add(event.id)
            intervals.append(
                BusyInterval(
                    participant=user.email,
                    start=event.start_instant,
                    end=event.end_instant,
                    event_id=event.id,
                    title=event.title,
                    location=event.location,
                )
            )
        return intervals

    @staticmethod
    def get_frequent_collaborators(db: Session, organizer: User, limit: int) -> list[tuple[str, int]]:
        """(email, invitation count) for people the organizer invites most"""
        rows = (
            db.query(Invitation.recipient_email, func.count(Invitation.id).label("times"))
            .join(Event, Event.id == Invitation.event_id)
            .filter(Event.organizer_id == organizer.id, Invitation.recipient_email != organizer.email)
            .group_by(Invitation.recipient_email)
            .order_by(func.count(Invitation.id).desc(), Invitation.recipient_email)
            .limit(limit)
            .all()
        )
        return [(email, times) for email, times in rows]
