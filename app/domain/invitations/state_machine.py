"""
Invitation state machine.

    PENDING  --accept (recipient)-------------> ACCEPTED
    PENDING  --decline (recipient)------------> DECLINED
    PENDING  --propose (recipient)------------> PROPOSED
    PROPOSED --accept_proposal (organizer)----> ACCEPTED
    PROPOSED --reject_proposal (organizer)----> DECLINED
    PROPOSED --supersede (system)-------------> SUPERSEDED

ACCEPTED, DECLINED and SUPERSEDED accept no further action. Event
cancellation is not a transition: the event is tombstoned instead.
"""

import enum
from dataclasses import dataclass

from ...models import InvitationStatus
from ...shared.exceptions import InvalidStateTransition, ValidationError


class InvitationAction(str, enum.Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    PROPOSE = "propose"
    ACCEPT_PROPOSAL = "accept_proposal"
    REJECT_PROPOSAL = "reject_proposal"
    SUPERSEDE = "supersede"


class ActorRole(str, enum.Enum):
    RECIPIENT = "recipient"
    ORGANIZER = "organizer"
    SYSTEM = "system"


@dataclass(frozen=True)
class Transition:
    source: InvitationStatus
    action: InvitationAction
    role: ActorRole
    target: InvitationStatus


TRANSITIONS = {
    (t.source, t.action): t
    for t in (
        Transition(InvitationStatus.PENDING, InvitationAction.ACCEPT, ActorRole.RECIPIENT, InvitationStatus.ACCEPTED),
        Transition(InvitationStatus.PENDING, InvitationAction.DECLINE, ActorRole.RECIPIENT, InvitationStatus.DECLINED),
        Transition(InvitationStatus.PENDING, InvitationAction.PROPOSE, ActorRole.RECIPIENT, InvitationStatus.PROPOSED),
        Transition(
            InvitationStatus.PROPOSED, InvitationAction.ACCEPT_PROPOSAL, ActorRole.ORGANIZER, InvitationStatus.ACCEPTED
        ),
        Transition(
            InvitationStatus.PROPOSED, InvitationAction.REJECT_PROPOSAL, ActorRole.ORGANIZER, InvitationStatus.DECLINED
        ),
        Transition(
            InvitationStatus.PROPOSED, InvitationAction.SUPERSEDE, ActorRole.SYSTEM, InvitationStatus.SUPERSEDED
        ),
    )
}

ACTION_ROLES = {
    InvitationAction.ACCEPT: ActorRole.RECIPIENT,
    InvitationAction.DECLINE: ActorRole.RECIPIENT,
    InvitationAction.PROPOSE: ActorRole.RECIPIENT,
    InvitationAction.ACCEPT_PROPOSAL: ActorRole.ORGANIZER,
    InvitationAction.REJECT_PROPOSAL: ActorRole.ORGANIZER,
    InvitationAction.SUPERSEDE: ActorRole.SYSTEM,
}

RECIPIENT_ACTIONS = frozenset(a for a, r in ACTION_ROLES.items() if r == ActorRole.RECIPIENT)

TERMINAL_STATUSES = frozenset(
    {InvitationStatus.ACCEPTED, InvitationStatus.DECLINED, InvitationStatus.SUPERSEDED}
)


def parse_status(value) -> InvitationStatus:
    try:
        return InvitationStatus(value.upper() if isinstance(value, str) else value)
    except ValueError:
        raise ValidationError(f"Unknown invitation status: {value}") from None


def parse_action(value) -> InvitationAction:
    try:
        return InvitationAction(value.lower() if isinstance(value, str) else value)
    except ValueError:
        raise ValidationError(f"Unknown invitation action: {value}") from None


def role_for(action: InvitationAction) -> ActorRole:
    return ACTION_ROLES[action]


def next_status(current, action) -> InvitationStatus:
    """Target status for ``action`` from ``current`` or InvalidStateTransition"""
    current = parse_status(current)
    action = parse_action(action)
    transition = TRANSITIONS.get((current, action))
    if transition is None:
        raise InvalidStateTransition(
            f"Cannot {action.value} an invitation in status {current.value}",
            current_status=current,
            action=action,
        )
    return transition.target


def allowed_actions(current) -> set[InvitationAction]:
    current = parse_status(current)
    return {action for (source, action) in TRANSITIONS if source == current}


def is_terminal(status) -> bool:
    return parse_status(status) in TERMINAL_STATUSES
