"""
Event time update policy.

Applies the side effects of an event's time changing: the event moves,
the accepted proposal closes, every competing proposal is superseded and
all invitees are told about the new time. Mutations are staged on the
session; committing them is the caller's job so they land in one
transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ...models import Event, Invitation, InvitationStatus, User
from ...services.notification_service import EVENT_TIME_CHANGED, DomainEvent, NotificationHub
from ...shared.exceptions import InvalidStateTransition, NotAuthorized
from .state_machine import InvitationAction, next_status

logger = logging.getLogger(__name__)

REASON_PROPOSAL_ACCEPTED = "proposal_accepted"
REASON_ORGANIZER_EDIT = "organizer_edit"


@dataclass
class TimeChange:
    event_id: str
    old_start: datetime
    old_end: datetime
    new_start: datetime
    new_end: datetime
    reason: str
    accepted_invitation_id: Optional[str] = None
    superseded_invitation_ids: list[str] = field(default_factory=list)

    @property
    def moved(self) -> bool:
        return (self.old_start, self.old_end) != (self.new_start, self.new_end)


class EventTimeUpdatePolicy:
    """Rules applied when an event's canonical time changes"""

    def __init__(self, hub: NotificationHub):
        self.hub = hub

    def apply_proposal_acceptance(
        self, event: Event, invitation: Invitation, organizer: User, now: datetime
    ) -> TimeChange:
        if event.organizer_id != organizer.id:
            raise NotAuthorized("Only the organizer can accept proposals")
        if invitation.event_id != event.id:
            raise InvalidStateTransition("Invitation does not belong to this event")
        target = next_status(invitation.status, InvitationAction.ACCEPT_PROPOSAL)
        if invitation.proposed_start is None or invitation.proposed_end is None:
            raise InvalidStateTransition("Invitation proposal is missing time information")

        change = TimeChange(
            event_id=event.id,
            old_start=event.start_instant,
            old_end=event.end_instant,
            new_start=invitation.proposed_start,
            new_end=invitation.proposed_end,
            reason=REASON_PROPOSAL_ACCEPTED,
            accepted_invitation_id=invitation.id,
        )

        event.start_instant = invitation.proposed_start
        event.end_instant = invitation.proposed_end
        invitation.status = target.value
        invitation.responded_at = now

        for other in event.invitations:
            if other.id == invitation.id or other.status != InvitationStatus.PROPOSED.value:
                continue
            other.status = next_status(other.status, InvitationAction.SUPERSEDE).value
            change.superseded_invitation_ids.append(other.id)

        logger.info(
            f"📅 Event {event.id} moved from [{change.old_start.isoformat()} to {change.old_end.isoformat()}] "
            f"to [{change.new_start.isoformat()} to {change.new_end.isoformat()}], "
            f"superseded {len(change.superseded_invitation_ids)} proposal(s)"
        )
        return change

    def apply_organizer_edit(self, event: Event, start: datetime, end: datetime) -> TimeChange:
        """Organizer moves the event directly; pending proposals stay open"""
        change = TimeChange(
            event_id=event.id,
            old_start=event.start_instant,
            old_end=event.end_instant,
            new_start=start,
            new_end=end,
            reason=REASON_ORGANIZER_EDIT,
        )
        event.start_instant = start
        event.end_instant = end
        return change

    def notify(self, event: Event, change: TimeChange) -> None:
        """Tell every invitee, whatever their status, about the new time"""
        if change.reason == REASON_ORGANIZER_EDIT and not change.moved:
            return
        self.hub.publish(
            DomainEvent(
                name=EVENT_TIME_CHANGED,
                event_id=event.id,
                recipients=tuple(inv.recipient_email for inv in event.invitations),
                payload={
                    "title": event.title,
                    "reason": change.reason,
                    "old_start": change.old_start.isoformat(),
                    "old_end": change.old_end.isoformat(),
                    "new_start": change.new_start.isoformat(),
                    "new_end": change.new_end.isoformat(),
                    "accepted_invitation_id": change.accepted_invitation_id,
                    "superseded_invitation_ids": list(change.superseded_invitation_ids),
                },
            )
        )
