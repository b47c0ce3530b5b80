"""
Invitation Reminder Background Worker
Publishes reminders for invitations still PENDING shortly before their event starts
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..config import REMINDER_MINUTES_BEFORE, REMINDER_POLL_SECONDS
from ..database import SessionLocal
from ..domain.invitations.repository import InvitationRepository
from ..models import utcnow
from ..services.notification_service import (
    INVITATION_REMINDER,
    DomainEvent,
    NotificationHub,
    get_notification_hub,
)

logger = logging.getLogger(__name__)


def process_pending_reminders(
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
    hub: Optional[NotificationHub] = None,
    already_sent: Optional[set] = None,
) -> int:
    """
    Publish an ``invitation.reminder`` for every PENDING invitation whose
    event starts within the next REMINDER_MINUTES_BEFORE minutes.

    Args:
        now: Reference instant (defaults to current UTC time)
        db: Session to use; a private one is opened and closed otherwise
        hub: Notification hub (defaults to the process-wide hub)
        already_sent: Invitation ids reminded on earlier runs; updated in place

    Returns:
        Number of reminders published
    """
    now = now or utcnow()
    hub = hub or get_notification_hub()
    own_session = db is None
    db = db or SessionLocal()
    try:
        window_end = now + timedelta(minutes=REMINDER_MINUTES_BEFORE)
        invitations = InvitationRepository.get_pending_starting_between(db, now, window_end)
        if not invitations:
            logger.debug("✅ No pending invitations need a reminder")
            return 0

        sent = 0
        for invitation in invitations:
            if already_sent is not None and invitation.id in already_sent:
                continue
            event = invitation.event
            hub.publish(
                DomainEvent(
                    name=INVITATION_REMINDER,
                    event_id=event.id,
                    recipients=(invitation.recipient_email,),
                    payload={
                        "invitation_id": invitation.id,
                        "title": event.title,
                        "start": event.start_instant.isoformat(),
                        "minutes_until_start": int((event.start_instant - now).total_seconds() // 60),
                    },
                    occurred_at=now,
                )
            )
            if already_sent is not None:
                already_sent.add(invitation.id)
            sent += 1

        if sent:
            logger.info(f"⏰ Sent {sent} invitation reminder(s)")
        return sent
    finally:
        if own_session:
            db.close()


async def run_reminder_worker():
    """
    Main worker loop - runs every REMINDER_POLL_SECONDS
    """
    logger.info("🚀 Starting invitation reminder worker...")
    reminded: set = set()

    while True:
        try:
            process_pending_reminders(already_sent=reminded)
        except Exception as e:
            logger.error(f"❌ Error in reminder worker loop: {e}")
        await asyncio.sleep(REMINDER_POLL_SECONDS)
