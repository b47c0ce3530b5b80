"""
Video conference links for events
Rooms are Jitsi Meet URLs: unguessable, need no account and no API call
"""

import logging
import uuid
from typing import Optional

from ..config import JITSI_BASE_URL

logger = logging.getLogger(__name__)


def generate_meeting_link(event_id: Optional[str] = None, base_url: str = JITSI_BASE_URL) -> str:
    """
    Build a unique Jitsi room URL

    Args:
        event_id: Event the room is for (logging only)
        base_url: Jitsi server, e.g. https://meet.jit.si/
    """
    if not base_url.endswith("/"):
        base_url += "/"
    link = f"{base_url}{uuid.uuid4()}"
    logger.info(f"🎥 Generated meeting link for event {event_id or '(new)'}: {link}")
    return link
