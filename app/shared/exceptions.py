"""Domain errors raised by the scheduling engine

Services raise these; the API layer maps them to HTTP responses through
``status_code``. None of them is raised after a partial write.
"""


class SchedulingError(Exception):
    """Base class for every engine error"""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidTimezone(SchedulingError):
    status_code = 400

    def __init__(self, timezone_id):
        super().__init__(f"Invalid timezone: {timezone_id}")
        self.timezone_id = timezone_id


class ValidationError(SchedulingError):
    """Malformed time range, participant list or payload"""

    status_code = 400


class NotAuthorized(SchedulingError):
    status_code = 403


class NotFound(SchedulingError):
    status_code = 404


class InvalidStateTransition(SchedulingError):
    status_code = 409

    def __init__(self, detail: str, current_status=None, action=None):
        super().__init__(detail)
        self.current_status = current_status
        self.action = action


class Conflict(SchedulingError):
    """Concurrent mutation detected at commit; retry against fresh state"""

    status_code = 409
