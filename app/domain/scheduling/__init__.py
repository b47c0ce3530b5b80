"""
Scheduling Domain

Calendar boundaries in IANA timezones, per-participant busy intervals and
the ranked common-free-slot search.

Structure:
- time_calculator.py      # Day/week/month boundaries, DST-aware
- conflict_index.py       # Busy-interval lookup per participant
- availability_service.py # Availability checks and slot search
- repository.py           # Busy-interval and collaborator queries
- router.py               # /availability and /calendar endpoints
"""
