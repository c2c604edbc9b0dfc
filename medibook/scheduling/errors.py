"""Errors raised by the scheduling core.

Every error carries a ``kind`` the transport layer maps to a response code and
a human-readable ``message``. None of them is retried inside the core.
"""


class SchedulingError(Exception):
    """Base class for all scheduling failures."""

    kind = 'scheduling_error'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(SchedulingError):
    """Raised for malformed dates or missing required fields."""

    kind = 'invalid_input'


class NotFound(SchedulingError):
    """Raised when an appointment, provider or requester does not exist."""

    kind = 'not_found'


class Forbidden(SchedulingError):
    """Raised when the principal lacks rights for the requested action."""

    kind = 'forbidden'


class SlotUnavailable(SchedulingError):
    """Raised when the provider already has a live booking in the requested slot."""

    kind = 'slot_unavailable'


class InvalidTransition(SchedulingError):
    """Raised when the requested status change is not an edge of the status graph."""

    kind = 'invalid_transition'


class NoChange(SchedulingError):
    """Raised when a write affected no record, usually because the id went stale."""

    kind = 'no_change'


__all__ = [
    'SchedulingError',
    'InvalidInput',
    'NotFound',
    'Forbidden',
    'SlotUnavailable',
    'InvalidTransition',
    'NoChange',
]
