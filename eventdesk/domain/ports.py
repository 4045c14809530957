"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the registration core
requires from external services: the identity provider, the hosted
data store, and the notification dispatchers. Adapters implement these
protocols structurally; none of them inherit from the Protocol classes.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

Row = dict[str, Any]


class RegistrationStatus(str, Enum):
    """
    Status of a Registration row.

    - PENDING: submitted, awaiting confirmation/payment
    - CONFIRMED: accepted, nothing further required before the event
    - SUBMITTED: post-confirmation deliverable uploaded
    - CHECKED_IN: attendance recorded at the event
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    SUBMITTED = "submitted"
    CHECKED_IN = "checked_in"


class WorkflowState(str, Enum):
    """
    Registration workflow states.

    State Transitions:
    - UNCHECKED -> CHECKING (signed-in load)
    - CHECKING -> NOT_REGISTERED | REGISTERED
    - NOT_REGISTERED -> SUBMITTING (submit)
    - SUBMITTING -> REGISTERED | FAILED | NOT_REGISTERED (ineligible)
    - FAILED -> NOT_REGISTERED (retry allowed)

    Any state returns to UNCHECKED when the identity changes.
    """

    UNCHECKED = "unchecked"
    CHECKING = "checking"
    NOT_REGISTERED = "not_registered"
    SUBMITTING = "submitting"
    REGISTERED = "registered"
    FAILED = "failed"


class EligibilityReason(str, Enum):
    """Why a registration attempt may not proceed."""

    SIGN_IN_REQUIRED = "sign_in_required"
    REGISTRATION_CLOSED = "registration_closed"
    DEADLINE_PASSED = "deadline_passed"
    EVENT_FULL = "event_full"

    @property
    def message(self) -> str:
        return _ELIGIBILITY_MESSAGES[self]


_ELIGIBILITY_MESSAGES = {
    EligibilityReason.SIGN_IN_REQUIRED: "Sign in required",
    EligibilityReason.REGISTRATION_CLOSED: "Registration closed",
    EligibilityReason.DEADLINE_PASSED: "Registration deadline passed",
    EligibilityReason.EVENT_FULL: "Event is full",
}


@dataclass(frozen=True)
class Identity:
    """Verified user identity as issued by the identity provider."""

    id: str
    full_name: str = ""
    email: str = ""

    def profile_seed(self) -> Row:
        """A new users row synthesised from the provider's claims."""
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "institution": "",
            "phone": "",
        }


class IdentityProvider(Protocol):
    """Port interface for the signed-in user."""

    def current_user(self) -> Identity | None:
        """Return the verified identity, or None when signed out."""
        ...


class DataStore(Protocol):
    """
    Port interface for the hosted relational data store.

    Collections are named tables; filters are column equality maps
    joined with AND. Uniqueness and capacity are enforced by the store.
    """

    def select(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        """
        Fetch all rows matching the filters.

        Raises:
            StoreError: If the query fails
        """
        ...

    def select_one(self, collection: str, filters: Mapping[str, Any]) -> Row | None:
        """
        Fetch a single row, or None when no row matches.

        Raises:
            StoreError: If the query fails
        """
        ...

    def count(self, collection: str, filters: Mapping[str, Any] | None = None) -> int:
        """
        Count rows matching the filters.

        Raises:
            StoreError: If the query fails
        """
        ...

    def insert(self, collection: str, record: Mapping[str, Any]) -> Row:

        """
        Insert a row and return it as stored.

        Raises:
            DuplicateKeyError: If a unique constraint is violated
            StoreError: For any other failure
        """
        ...

    def update(
        self, collection: str, filters: Mapping[str, Any], changes: Mapping[str, Any]
    ) -> int:
        """
        Update matching rows with a partial record.

        Returns:
            Number of rows updated

        Raises:
            StoreError: If the update fails
        """
        ...

    def upsert(self, collection: str, record: Mapping[str, Any]) -> Row:
        """
        Insert-or-update keyed by the record's "id".

        Only the columns present in the record are written; other
        columns of an existing row are left untouched.

        Raises:
            StoreError: If the upsert fails
        """
        ...


class EmailSender(Protocol):
    """Port interface for outbound email."""

    def send_email(self, kind: str, to: str, template_data: Mapping[str, Any]) -> None:
        """
        Send a templated email.

        Args:
            kind: Template name, e.g. "registration_confirmation"
            to: Recipient email address
            template_data: Values rendered into the template
        """
        ...


class InAppNotifier(Protocol):
    """Port interface for in-app notifications."""

    def create_notification(
        self,
        user_id: str,
        title: str,
        message: str,
        kind: str,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        """Create an in-app notification for a user."""
        ...
