"""
Registration eligibility - Pure decision logic.

Rules are evaluated in order and the first failing rule wins:

1. A signed-in identity is required      -> SIGN_IN_REQUIRED
2. The event must be active              -> REGISTRATION_CLOSED
3. Now must not be past the deadline     -> DEADLINE_PASSED
4. Capacity, when a count is supplied    -> EVENT_FULL

The check is run when the view is rendered and again at submit time,
since the deadline can pass between page load and the user's click.
"""

from dataclasses import dataclass
from datetime import datetime

from .events import Event
from .ports import EligibilityReason, Identity


@dataclass(frozen=True)
class Eligibility:
    """Result of an eligibility check."""

    allowed: bool
    reason: EligibilityReason | None = None

    @property
    def message(self) -> str | None:
        return self.reason.message if self.reason else None


ELIGIBLE = Eligibility(allowed=True)


def check_eligibility(
    identity: Identity | None,
    event: Event,
    now: datetime,
    registered_count: int | None = None,
) -> Eligibility:
    """
    Decide whether a registration attempt may proceed.

    Args:
        identity: Signed-in identity, or None
        event: Event being registered for
        now: Current time (timezone-aware, comparable to the deadline)
        registered_count: Current number of registrations, when known

    Returns:
        Eligibility with the first failing reason, or ELIGIBLE
    """
    if identity is None:
        return Eligibility(False, EligibilityReason.SIGN_IN_REQUIRED)
    if not event.is_active:
        return Eligibility(False, EligibilityReason.REGISTRATION_CLOSED)
    if now > event.registration_deadline:
        return Eligibility(False, EligibilityReason.DEADLINE_PASSED)
    if (
        event.max_participants is not None
        and registered_count is not None
        and registered_count >= event.max_participants
    ):
        return Eligibility(False, EligibilityReason.EVENT_FULL)
    return ELIGIBLE
