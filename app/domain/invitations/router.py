"""Invitation router - FastAPI endpoints for invitation responses"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...shared.exceptions import ValidationError
from ..events.schemas import EventResponse
from ..scheduling.time_calculator import sanitize_timezone
from .schemas import (
    InvitationRespondRequest,
    InvitationResponse,
    ProposalAcceptanceResponse,
    RejectProposalRequest,
    ResponsePayload,
)
from .service import InvitationService
from .state_machine import InvitationAction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invitations", tags=["Invitations"])

# Legacy clients send the target status instead of the action
STATUS_TO_ACTION = {
    "ACCEPTED": InvitationAction.ACCEPT,
    "DECLINED": InvitationAction.DECLINE,
    "PROPOSED": InvitationAction.PROPOSE,
}


def get_invitation_service(db: Session = Depends(get_db)) -> InvitationService:
    """Dependency injection for InvitationService"""
    return InvitationService(db)


def resolve_action(data: InvitationRespondRequest):
    if data.action:
        return data.action
    if data.status:
        action = STATUS_TO_ACTION.get(data.status.upper())
        if action is None:
            raise ValidationError("Status must be ACCEPTED, DECLINED, or PROPOSED")
        return action
    raise ValidationError("Either action or status is required")


@router.get("", response_model=list[InvitationResponse])
async def get_my_invitations(
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """Invitations addressed to the current user on live events"""
    invitations = service.get_user_invitations(current_user, status)
    return [InvitationResponse.from_invitation(inv) for inv in invitations]


@router.patch("/{invitation_id}", response_model=InvitationResponse)
async def respond_to_invitation(
    invitation_id: str,
    data: InvitationRespondRequest,
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """Accept, decline or propose a new time"""
    payload = ResponsePayload(
        proposedStart=data.proposedStart,
        proposedEnd=data.proposedEnd,
        responseNote=data.responseNote,
    )
    invitation = service.respond_to_invitation(invitation_id, current_user, resolve_action(data), payload)
    return InvitationResponse.from_invitation(invitation)


@router.post("/{invitation_id}/accept-proposal", response_model=ProposalAcceptanceResponse)
async def accept_proposal(
    invitation_id: str,
    timezone: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """Organizer adopts the proposed time for the whole event"""
    result = service.accept_proposal(invitation_id, current_user)
    viewer_tz = sanitize_timezone(timezone, current_user.timezone)
    return ProposalAcceptanceResponse(
        event=EventResponse.from_event(result.event, viewer_tz, include_invitations=True),
        supersededInvitationIds=result.superseded_invitation_ids,
    )


@router.post("/{invitation_id}/reject-proposal", response_model=InvitationResponse)
async def reject_proposal(
    invitation_id: str,
    data: Optional[RejectProposalRequest] = None,
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """Organizer turns the proposal down"""
    invitation = service.reject_proposal(invitation_id, current_user, data.note if data else None)
    return InvitationResponse.from_invitation(invitation)
