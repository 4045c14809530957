"""
Domain exceptions - Semantic error types for event registration.

This module defines domain-specific exceptions that communicate
business rule violations and port failures without leaking
infrastructure details (no psycopg or HTTP types cross this line).
"""


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    pass


class NotEligible(RegistrationError):
    """Registration may not proceed (signed out, closed, deadline, full)."""

    def __init__(self, reason) -> None:
        super().__init__(reason.message)
        self.reason = reason


class InvalidTeam(RegistrationError):
    """Team form is incomplete or exceeds the event's team size."""

    pass


class StoreError(RegistrationError):
    """Data store rejected or failed an operation."""

    pass


class DuplicateKeyError(StoreError):
    """Insert violated a unique constraint, e.g. (user_id, event_id)."""

    pass


class ProfileError(RegistrationError):
    """Profile could not be loaded or saved."""

    pass


class IdentityError(Exception):
    """Identity token could not be verified."""

    pass
