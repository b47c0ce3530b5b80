"""Busy-interval lookup per participant over a consistent store snapshot"""

from bisect import bisect_left
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping, Optional


@dataclass(frozen=True)
class BusyInterval:
    """Half-open [start, end) during which a participant cannot be scheduled"""

    participant: str
    start: datetime
    end: datetime
    event_id: Optional[str] = None
    title: Optional[str] = None
    location: Optional[str] = None

    def overlaps(self, start: datetime, end: datetime) -> bool:
        # Touching endpoints do not conflict
        return self.start < end and self.end > start


class _ParticipantIntervals:
    __slots__ = ("intervals", "starts", "max_end")

    def __init__(self, intervals: Iterable[BusyInterval]):
        self.intervals = sorted(intervals, key=lambda i: (i.start, i.end))
        self.starts = [i.start for i in self.intervals]
        # max_end[k] is the latest end among intervals[0..k]
        self.max_end = []
        latest = None
        for interval in self.intervals:
            latest = interval.end if latest is None or interval.end > latest else latest
            self.max_end.append(latest)

    def candidates_before(self, end: datetime) -> int:
        """Number of intervals whose start is strictly before ``end``"""
        return bisect_left(self.starts, end)


class ConflictIndex:
    """
    Answers "is this participant busy over [start, end)?" for a fixed set of
    busy intervals. Participants absent from the mapping are free.
    """

    def __init__(self, busy_by_participant: Mapping[str, Iterable[BusyInterval]]):
        self._index = {
            participant: _ParticipantIntervals(intervals)
            for participant, intervals in busy_by_participant.items()
        }

    @property
    def participants(self) -> list[str]:
        return list(self._index)

    def is_busy(self, participant: str, start: datetime, end: datetime) -> bool:
        entry = self._index.get(participant)
        if entry is None or not entry.intervals:
            return False
        count = entry.candidates_before(end)
        if count == 0:
            return False
        return entry.max_end[count - 1] > start

    def conflicts(self, participant: str, start: datetime, end: datetime) -> list[BusyInterval]:
        entry = self._index.get(participant)
        if entry is None:
            return []
        count = entry.candidates_before(end)
        return [i for i in entry.intervals[:count] if i.end > start]

    def any_busy(self, participants: Iterable[str], start: datetime, end: datetime) -> bool:
        return any(self.is_busy(p, start, end) for p in participants)
