"""
Availability service - participant availability and ranked meeting slots.

Slots are enumerated on a fixed step across the search window, filtered
through the ConflictIndex and ranked by score (descending) then start time
(ascending). The search never examines more than ``max_candidates`` starts.
"""

import enum
import heapq
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Iterator, Optional, Sequence

from sqlalchemy.orm import Session

from ...config import (
    MAX_CANDIDATES,
    MAX_MEETING_MINUTES,
    PER_ATTENDEE_LOOKAHEAD_DAYS,
    PER_ATTENDEE_SUGGESTIONS,
    SLOT_STEP_MINUTES,
    WORKING_HOURS_END,
    WORKING_HOURS_START,
)
from ...models import User
from ...shared.exceptions import ValidationError
from ...shared.validators import normalize_participants, validate_time_range
from .conflict_index import BusyInterval, ConflictIndex
from .repository import SchedulingRepository
from .time_calculator import resolve_zone, sanitize_timezone

logger = logging.getLogger(__name__)

PROXIMITY_WEIGHT = 100.0
WORKING_HOURS_BONUS = 50.0


class ParticipantStatus(str, enum.Enum):
    FOUND = "FOUND"
    USER_NOT_FOUND = "UserNotFound"


@dataclass(frozen=True)
class AvailabilitySlot:
    start: datetime
    end: datetime
    score: float

    @property
    def rank_key(self):
        return (-self.score, self.start)


@dataclass(frozen=True)
class ParticipantLookup:
    email: str
    status: ParticipantStatus
    display_name: Optional[str] = None
    timezone: Optional[str] = None

    @property
    def user_found(self) -> bool:
        return self.status == ParticipantStatus.FOUND


@dataclass
class ParticipantAvailability:
    participant: str
    display_name: str
    is_available: bool
    user_found: bool
    conflicts: list[BusyInterval] = field(default_factory=list)
    suggested_slots: list[AvailabilitySlot] = field(default_factory=list)


@dataclass
class MeetingSlotsResult:
    slots: list[AvailabilitySlot]
    participants: list[ParticipantLookup]
    timezone: str
    truncated: bool = False


def within_working_hours(start: datetime, end: datetime, tz: str) -> bool:
    zone = resolve_zone(tz)
    local_start = start.astimezone(zone)
    local_end = end.astimezone(zone)
    if local_start.date() != local_end.date():
        return False
    return local_start.time() >= time(WORKING_HOURS_START) and local_end.time() <= time(
        WORKING_HOURS_END
    )


def score_slot(
    start: datetime, end: datetime, window_start: datetime, window_end: datetime, tz: str
) -> float:
    """
    Linear proximity to the window start (100 at the start, 0 at the end)
    plus a flat bonus for slots fully inside local working hours.
    """
    span = (window_end - window_start).total_seconds()
    offset = (start - window_start).total_seconds()
    proximity = PROXIMITY_WEIGHT * (1 - offset / span) if span > 0 else PROXIMITY_WEIGHT
    bonus = WORKING_HOURS_BONUS if within_working_hours(start, end, tz) else 0.0
    return round(proximity + bonus, 4)


def majority_timezone(lookups: Sequence[ParticipantLookup], fallback: str) -> str:
    counts = Counter(p.timezone for p in lookups if p.user_found and p.timezone)
    if not counts:
        return fallback
    # Most common zone; alphabetical among equals for determinism
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[0][0]


class SlotSearch:
    """
    Lazy, finite and restartable sequence of admissible slots.

    Nothing is evaluated until iteration; every iteration re-runs the
    bounded candidate scan against the same index.
    """

    def __init__(
        self,
        index: ConflictIndex,
        participants: Sequence[str],
        window_start: datetime,
        window_end: datetime,
        duration: timedelta,
        step: timedelta,
        timezone: str,
        max_candidates: int = MAX_CANDIDATES,
    ):
        self.index = index
        self.participants = list(participants)
        self.window_start = window_start
        self.window_end = window_end
        self.duration = duration
        self.step = step
        self.timezone = timezone
        self.max_candidates = max_candidates
        self.truncated = False

    def candidate_starts(self) -> Iterator[datetime]:
        self.truncated = False
        examined = 0
        current = self.window_start
        while current + self.duration <= self.window_end:
            if examined >= self.max_candidates:
                self.truncated = True
                logger.warning(
                    f"⚠️ Slot search stopped after {examined} candidates "
                    f"(window {self.window_start.isoformat()} to {self.window_end.isoformat()})"
                )
                return
            examined += 1
            yield current
            current += self.step

    def admissible(self) -> Iterator[AvailabilitySlot]:
        """Admissible slots in chronological order"""
        for start in self.candidate_starts():
            end = start + self.duration
            if self.index.any_busy(self.participants, start, end):
                continue
            yield AvailabilitySlot(
                start=start,
                end=end,
                score=score_slot(start, end, self.window_start, self.window_end, self.timezone),
            )

    def __iter__(self) -> Iterator[AvailabilitySlot]:
        return iter(sorted(self.admissible(), key=lambda s: s.rank_key))

    def top(self, n: int) -> list[AvailabilitySlot]:
        if n <= 0:
            return []
        return heapq.nsmallest(n, self.admissible(), key=lambda s: s.rank_key)


def find_slots(
    index: ConflictIndex,
    participants: Sequence[str],
    window_start: datetime,
    window_end: datetime,
    duration_minutes: int,
    step_minutes: int = SLOT_STEP_MINUTES,
    timezone: str = "UTC",
    max_candidates: int = MAX_CANDIDATES,
) -> SlotSearch:
    """Validate inputs and build a SlotSearch over an existing index"""
    window_start, window_end = validate_time_range(window_start, window_end, "search window")
    if not isinstance(duration_minutes, int) or duration_minutes <= 0:
        raise ValidationError("Duration must be positive")
    if duration_minutes > MAX_MEETING_MINUTES:
        raise ValidationError(f"Duration cannot exceed {MAX_MEETING_MINUTES} minutes")
    if not isinstance(step_minutes, int) or step_minutes <= 0:
        raise ValidationError("Step must be positive")
    if max_candidates <= 0:
        raise ValidationError("max_candidates must be positive")
    resolve_zone(timezone)

    return SlotSearch(
        index=index,
        participants=participants,
        window_start=window_start,
        window_end=window_end,
        duration=timedelta(minutes=duration_minutes),
        step=timedelta(minutes=step_minutes),
        timezone=timezone,
        max_candidates=max_candidates,
    )


class AvailabilityService:
    """Service layer for availability checks backed by the event store"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    def lookup_participants(self, participants: Sequence[str]) -> tuple[list[ParticipantLookup], dict[str, User]]:
        users = self.repo.get_users_by_emails(self.db, participants)
        lookups = []
        for email in participants:
            user = users.get(email)
            if user is None:
                logger.warning(f"⚠️ User with email {email} not found in system")
                lookups.append(ParticipantLookup(email, ParticipantStatus.USER_NOT_FOUND))
            else:
                lookups.append(
                    ParticipantLookup(email, ParticipantStatus.FOUND, user.display_name, user.timezone)
                )
        return lookups, users

    def build_index(self, users: dict[str, User], start: datetime, end: datetime) -> ConflictIndex:
        return ConflictIndex(
            {email: self.repo.get_busy_intervals(self.db, user, start, end) for email, user in users.items()}
        )

    def search_slots(
        self,
        participants: Sequence[str],
        window_start: datetime,
        window_end: datetime,
        duration_minutes: int,
        step_minutes: int = SLOT_STEP_MINUTES,
        timezone: Optional[str] = None,
        max_candidates: int = MAX_CANDIDATES,
    ) -> tuple[SlotSearch, list[ParticipantLookup]]:
        """Lazy search plus the per-participant lookup outcome"""
        participants = normalize_participants(participants)
        if not participants:
            raise ValidationError("At least one participant is required")
        window_start, window_end = validate_time_range(window_start, window_end, "search window")

        lookups, users = self.lookup_participants(participants)
        zone = majority_timezone(lookups, sanitize_timezone(timezone))
        index = self.build_index(users, window_start, window_end)

        search = find_slots(
            index,
            participants,
            window_start,
            window_end,
            duration_minutes,
            step_minutes=step_minutes,
            timezone=zone,
            max_candidates=max_candidates,
        )
        return search, lookups

    def find_meeting_slots(
        self,
        participants: Sequence[str],
        window_start: datetime,
        window_end: datetime,
        duration_minutes: int,
        step_minutes: int = SLOT_STEP_MINUTES,
        limit: Optional[int] = None,
        timezone: Optional[str] = None,
        max_candidates: int = MAX_CANDIDATES,
    ) -> MeetingSlotsResult:
        """Ranked slots where every participant is free; may be empty"""
        search, lookups = self.search_slots(
            participants,
            window_start,
            window_end,
            duration_minutes,
            step_minutes=step_minutes,
            timezone=timezone,
            max_candidates=max_candidates,
        )
        slots = search.top(limit) if limit is not None else list(search)
        logger.info(
            f"📅 Found {len(slots)} slot(s) for {len(lookups)} participant(s) "
            f"({sum(1 for p in lookups if not p.user_found)} unknown)"
        )
        return MeetingSlotsResult(
            slots=slots, participants=lookups, timezone=search.timezone, truncated=search.truncated
        )

    def check_availability(
        self, participants: Sequence[str], start: datetime, end: datetime
    ) -> list[ParticipantAvailability]:
        """
        Availability of each participant for [start, end). Unknown users are
        reported with user_found=False instead of failing the request.
        """
        participants = normalize_participants(participants)
        if not participants:
            return []
        start, end = validate_time_range(start, end, "proposed meeting")
        logger.info(f"🔍 Checking availability for {len(participants)} participants")

        duration = end - start
        lookahead_end = max(start + timedelta(days=PER_ATTENDEE_LOOKAHEAD_DAYS), end + duration)
        users = self.repo.get_users_by_emails(self.db, participants)

        results = []
        for email in participants:
            user = users.get(email)
            if user is None:
                logger.warning(f"⚠️ User with email {email} not found in system")
                results.append(ParticipantAvailability(email, email, is_available=False, user_found=False))
                continue

            index = ConflictIndex(
                {email: self.repo.get_busy_intervals(self.db, user, start, lookahead_end)}
            )
            conflicts = index.conflicts(email, start, end)
            suggestions = []
            if conflicts:
                suggestions = self._alternative_slots(index, user, start, lookahead_end, duration)
            results.append(
                ParticipantAvailability(
                    participant=email,
                    display_name=user.display_name,
                    is_available=not conflicts,
                    user_found=True,
                    conflicts=conflicts,
                    suggested_slots=suggestions,
                )
            )

        logger.info(
            f"✅ Availability check complete: {sum(1 for r in results if r.is_available)} available, "
            f"{sum(1 for r in results if not r.is_available)} unavailable"
        )
        return results

    def _alternative_slots(
        self,
        index: ConflictIndex,
        user: User,
        search_start: datetime,
        search_end: datetime,
        duration: timedelta,
    ) -> list[AvailabilitySlot]:
        minutes = int(duration.total_seconds() // 60)
        if minutes <= 0 or minutes > MAX_MEETING_MINUTES:
            return []
        search = find_slots(
            index,
            [user.email],
            search_start,
            search_end,
            minutes,
            timezone=sanitize_timezone(user.timezone),
        )
        return search.top(PER_ATTENDEE_SUGGESTIONS)

    def suggest_collaborators(self, user: User, limit: int = 10) -> list[dict]:
        """People the user invites most often, most frequent first"""
        if limit <= 0:
            raise ValidationError("Limit must be positive")
        rows = self.repo.get_frequent_collaborators(self.db, user, limit)
        users = self.repo.get_users_by_emails(self.db, [email for email, _ in rows])
        return [
            {
                "email": email,
                "display_name": users[email].display_name if email in users else None,
                "timezone": users[email].timezone if email in users else None,
                "invitation_count": times,
            }
            for email, times in rows
        ]
