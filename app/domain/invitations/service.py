"""Invitation service - Business logic for invitation responses and proposals"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...locking import EventLockManager, event_transaction, get_event_lock_manager
from ...models import Event, Invitation, InvitationStatus, User, utcnow
from ...services.notification_service import (
    INVITATION_RESPONDED,
    DomainEvent,
    NotificationHub,
    get_notification_hub,
)
from ...shared.exceptions import (
    InvalidStateTransition,
    NotAuthorized,
    NotFound,
    ValidationError,
)
from ...shared.validators import validate_note, validate_time_range
from .policy import EventTimeUpdatePolicy
from .repository import InvitationRepository
from .schemas import ResponsePayload
from .state_machine import (
    RECIPIENT_ACTIONS,
    InvitationAction,
    next_status,
    parse_action,
    parse_status,
)

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_NOTE = "Proposal rejected by organizer"


@dataclass
class ProposalAcceptance:
    event: Event
    invitation: Invitation
    superseded_invitation_ids: list[str]


class InvitationService:
    """Service layer for the invitation lifecycle"""

    def __init__(
        self,
        db: Session,
        lock_manager: Optional[EventLockManager] = None,
        hub: Optional[NotificationHub] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.repo = InvitationRepository()
        self.locks = lock_manager or get_event_lock_manager()
        self.hub = hub or get_notification_hub()
        self.policy = EventTimeUpdatePolicy(self.hub)
        self.clock = clock

    # ------------------------------------------------------------------
    # Lookups and authorization
    # ------------------------------------------------------------------

    def _get_invitation(self, invitation_id: str) -> Invitation:
        invitation = self.repo.get_invitation(self.db, invitation_id)
        if not invitation:
            raise NotFound("Invitation not found")
        return invitation

    def _get_event(self, event_id: str) -> Event:
        event = self.repo.get_event(self.db, event_id)
        if not event:
            raise NotFound("Event not found")
        return event

    @staticmethod
    def _ensure_recipient(invitation: Invitation, actor: User) -> None:
        if not actor or invitation.recipient_email != (actor.email or "").lower():
            raise NotAuthorized("User is not the recipient of this invitation")

    @staticmethod
    def _ensure_organizer(event: Event, actor: User) -> None:
        if not actor or event.organizer_id != actor.id:
            raise NotAuthorized("User is not the organizer of this event")

    def _event_transaction(self, event_id: str):
        return event_transaction(self.db, self.locks, event_id)

    # ------------------------------------------------------------------
    # Recipient actions
    # ------------------------------------------------------------------

    def respond_to_invitation(
        self,
        invitation_id: str,
        actor: User,
        action,
        payload: Optional[ResponsePayload] = None,
    ) -> Invitation:
        """Recipient accepts, declines or proposes a new time"""
        action = parse_action(action)
        if action not in RECIPIENT_ACTIONS:
            raise ValidationError("Action must be accept, decline or propose")
        payload = payload or ResponsePayload()
        note = validate_note(payload.responseNote)

        proposed_start = proposed_end = None
        if action == InvitationAction.PROPOSE:
            proposed_start, proposed_end = validate_time_range(
                payload.proposedStart, payload.proposedEnd, "proposal"
            )
        elif payload.proposedStart is not None or payload.proposedEnd is not None:
            raise ValidationError("Proposal fields should not be set for accept/decline")

        invitation = self._get_invitation(invitation_id)
        self._ensure_recipient(invitation, actor)
        event_id = invitation.event_id
        logger.info(f"📥 {actor.email} responding to invitation {invitation_id}: {action.value}")

        with self._event_transaction(event_id):
            invitation = self._get_invitation(invitation_id)
            if invitation.event.is_cancelled:
                raise InvalidStateTransition("Event has been cancelled", current_status=invitation.status)
            target = next_status(invitation.status, action)

            invitation.status = target.value
            invitation.response_note = note
            invitation.responded_at = self.clock()
            if target == InvitationStatus.PROPOSED:
                invitation.proposed_start = proposed_start
                invitation.proposed_end = proposed_end
            else:
                invitation.proposed_start = None
                invitation.proposed_end = None

        self.db.refresh(invitation)
        logger.info(f"✅ Invitation {invitation_id} is now {invitation.status}")

        self.hub.publish(
            DomainEvent(
                name=INVITATION_RESPONDED,
                event_id=event_id,
                recipients=(invitation.event.organizer.email,),
                payload={
                    "invitation_id": invitation.id,
                    "recipient": invitation.recipient_email,
                    "status": invitation.status,
                },
            )
        )
        return invitation

    # ------------------------------------------------------------------
    # Organizer actions
    # ------------------------------------------------------------------

    def accept_proposal(self, invitation_id: str, actor: User) -> ProposalAcceptance:
        """Organizer adopts a proposed time; competing proposals are superseded"""
        invitation = self._get_invitation(invitation_id)
        self._ensure_organizer(invitation.event, actor)
        event_id = invitation.event_id
        logger.info(f"📥 {actor.email} accepting proposal on invitation {invitation_id}")

        with self._event_transaction(event_id):
            invitation = self._get_invitation(invitation_id)
            event = invitation.event
            if event.is_cancelled:
                raise InvalidStateTransition("Event has been cancelled", current_status=invitation.status)
            change = self.policy.apply_proposal_acceptance(event, invitation, actor, self.clock())

        self.db.refresh(event)
        self.policy.notify(event, change)
        return ProposalAcceptance(
            event=event,
            invitation=invitation,
            superseded_invitation_ids=change.superseded_invitation_ids,
        )

    def reject_proposal(self, invitation_id: str, actor: User, note: Optional[str] = None) -> Invitation:
        """Organizer turns a proposal down; the invitation ends DECLINED"""
        note = validate_note(note)
        invitation = self._get_invitation(invitation_id)
        self._ensure_organizer(invitation.event, actor)
        event_id = invitation.event_id
        logger.info(f"📥 {actor.email} rejecting proposal on invitation {invitation_id}")

        with self._event_transaction(event_id):
            invitation = self._get_invitation(invitation_id)
            if invitation.event.is_cancelled:
                raise InvalidStateTransition("Event has been cancelled", current_status=invitation.status)
            target = next_status(invitation.status, InvitationAction.REJECT_PROPOSAL)
            invitation.status = target.value
            invitation.response_note = note or DEFAULT_REJECTION_NOTE
            invitation.responded_at = self.clock()

        self.db.refresh(invitation)
        self.hub.publish(
            DomainEvent(
                name=INVITATION_RESPONDED,
                event_id=event_id,
                recipients=(invitation.recipient_email,),
                payload={
                    "invitation_id": invitation.id,
                    "status": invitation.status,
                    "note": invitation.response_note,
                },
            )
        )
        return invitation

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_event_invitations(self, event_id: str, actor: User) -> list[Invitation]:
        event = self._get_event(event_id)
        self._ensure_organizer(event, actor)
        return self.repo.get_event_invitations(self.db, event_id)

    def get_event_summary(self, event_id: str, actor: User) -> dict:
        invitations = self.get_event_invitations(event_id, actor)
        counts = Counter(inv.status for inv in invitations)
        return {
            "total": len(invitations),
            "accepted": counts[InvitationStatus.ACCEPTED.value],
            "declined": counts[InvitationStatus.DECLINED.value],
            "pending": counts[InvitationStatus.PENDING.value],
            "proposed": counts[InvitationStatus.PROPOSED.value],
            "superseded": counts[InvitationStatus.SUPERSEDED.value],
        }

    def get_event_proposals(self, event_id: str, actor: User) -> list[Invitation]:
        event = self._get_event(event_id)
        self._ensure_organizer(event, actor)
        return self.repo.get_event_invitations_by_status(self.db, event_id, InvitationStatus.PROPOSED)

    def get_user_invitations(self, actor: User, status=None) -> list[Invitation]:
        parsed = parse_status(status) if status else None
        return self.repo.get_user_invitations(self.db, actor.email, parsed)
