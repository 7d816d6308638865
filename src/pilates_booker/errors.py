"""
Errors raised by a booking attempt.

Every one of them is retryable: the retry controller catches them at its
boundary, backs off and starts a fresh browser session.
"""


class BookingAttemptError(Exception):
    """Base class for attempt-level failures."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class AuthenticationError(BookingAttemptError):
    pass


class SlotNotFoundError(BookingAttemptError):
    pass


class SubmitNotFoundError(BookingAttemptError):
    pass


class ConflictDetectedError(BookingAttemptError):
    """Another client booked the same slot at the same instant."""


class TimeoutDetectedError(BookingAttemptError):
    """The site reported a request timeout."""


class AttemptFailedError(BookingAttemptError):
    """The site rejected the action for some other reason."""
