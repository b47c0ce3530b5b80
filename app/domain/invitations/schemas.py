"""Invitation domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..events.schemas import EventResponse


class ResponsePayload(BaseModel):
    """Optional data attached to a recipient response"""

    proposedStart: Optional[datetime] = None
    proposedEnd: Optional[datetime] = None
    responseNote: Optional[str] = None


class InvitationRespondRequest(ResponsePayload):
    """Schema for a recipient response

    Either ``action`` (accept/decline/propose) or the legacy ``status``
    (ACCEPTED/DECLINED/PROPOSED) must be given.
    """

    action: Optional[str] = None
    status: Optional[str] = None


class RejectProposalRequest(BaseModel):
    note: Optional[str] = None


class InvitationResponse(BaseModel):
    """Schema for invitation response"""

    id: str
    eventId: str
    recipientEmail: str
    status: str
    proposedStart: Optional[datetime] = None
    proposedEnd: Optional[datetime] = None
    responseNote: Optional[str] = None
    respondedAt: Optional[datetime] = None
    eventTitle: Optional[str] = None
    eventStart: Optional[datetime] = None
    eventEnd: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_invitation(cls, invitation) -> "InvitationResponse":
        event = invitation.event
        return cls(
            id=invitation.id,
            eventId=invitation.event_id,
            recipientEmail=invitation.recipient_email,
            status=invitation.status,
            proposedStart=invitation.proposed_start,
            proposedEnd=invitation.proposed_end,
            responseNote=invitation.response_note,
            respondedAt=invitation.responded_at,
            eventTitle=event.title if event else None,
            eventStart=event.start_instant if event else None,
            eventEnd=event.end_instant if event else None,
        )


class InvitationSummaryResponse(BaseModel):
    total: int
    accepted: int
    declined: int
    pending: int
    proposed: int
    superseded: int


class ProposalAcceptanceResponse(BaseModel):
    event: EventResponse
    supersededInvitationIds: list[str]
