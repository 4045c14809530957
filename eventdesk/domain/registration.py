"""
Registration workflow - Event-scoped registration state machine.

This module contains the core business logic for registering a user
for an event, individually or as a team leader.

Workflow State Machine
======================

    UNCHECKED --load()--> CHECKING --> NOT_REGISTERED
                                   `-> REGISTERED(status)

    NOT_REGISTERED --submit()--> SUBMITTING --> REGISTERED(pending|confirmed)
                                            `-> NOT_REGISTERED (ineligible)
                                            `-> FAILED --> NOT_REGISTERED

A signed-out session stays in UNCHECKED and shows the sign-in call to
action. A revisit of an already registered user lands in REGISTERED
directly and never re-submits.

Submit order (each write waits for the previous one):
1. Sign-in, active and deadline re-check, then the already-registered
   re-check, then the capacity count (reads only)
2. Profile creation from identity claims when no row exists yet, then the
   upsert merging the form-provided contact fields
3. Individual: registration insert
   Team: team insert, member inserts (concurrent), leader registration insert
4. Best-effort email and in-app notification

Note: (user_id, event_id) uniqueness is enforced by the store. The
check-then-insert here is racy under double submits; the duplicate key
path resolves the loser to "already registered".
"""

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .eligibility import check_eligibility
from .events import Event
from .exceptions import DuplicateKeyError, InvalidTeam, NotEligible, StoreError
from .identity import IdentitySession
from .ports import (
    DataStore,
    EmailSender,
    Identity,
    InAppNotifier,
    RegistrationStatus,
    WorkflowState,
)
from .team import TeamRoster

logger = logging.getLogger(__name__)

SIGN_IN_LABEL = "Sign In to Register"
REGISTER_LABEL = "Register Now"
REGISTER_TEAM_LABEL = "Register Team"
CHECKING_LABEL = "Checking…"
REGISTERING_LABEL = "Registering…"

REGISTRATION_SUCCESS = "You have successfully registered for this event"
ALREADY_REGISTERED = "You are already registered for this event"
REGISTRATION_FAILED = "There was an error registering for this event. Please try again."

STATUS_LABELS = {
    RegistrationStatus.CONFIRMED.value: "Registered ✓",
    RegistrationStatus.PENDING.value: "Registration Pending",
    RegistrationStatus.SUBMITTED.value: "Submitted ✓",
    RegistrationStatus.CHECKED_IN.value: "Checked In ✓",
}

STATUS_TEXT = {
    RegistrationStatus.CONFIRMED.value: "Confirmed",
    RegistrationStatus.PENDING.value: "Pending",
    RegistrationStatus.SUBMITTED.value: "Submitted",
    RegistrationStatus.CHECKED_IN.value: "Checked In",
}

BADGE_COLORS = {
    RegistrationStatus.CONFIRMED.value: "green",
    RegistrationStatus.PENDING.value: "yellow",
    RegistrationStatus.SUBMITTED.value: "blue",
    RegistrationStatus.CHECKED_IN.value: "purple",
}

PROFILE_FORM_FIELDS = ("full_name", "email", "phone", "institution")


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, f"Registration {status}")


def status_text(status: str) -> str:
    return STATUS_TEXT.get(status, "Unknown")


def badge_color(status: str) -> str:
    return BADGE_COLORS.get(status, "gray")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RegistrationForm:
    """
    Values submitted with a registration.

    Contact fields left as None are not written to the profile, so
    existing profile values survive the upsert.
    """

    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    institution: str | None = None
    team_name: str | None = None
    member_names: tuple[str, ...] = ()

    def profile_fields(self) -> dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in PROFILE_FORM_FIELDS
            if getattr(self, name) is not None
        }


@dataclass(frozen=True)
class RegistrationView:
    """Snapshot of the workflow rendered by the front end."""

    state: WorkflowState
    label: str
    status: str | None = None
    message: str | None = None
    badge_color: str | None = None
    can_submit: bool = False
    created: bool = False


class RegistrationWorkflow:
    """
    Registration controller for one event and one identity session.

    All state lives in a single state machine that is rehydrated from
    the store by load() and after every submit; there are no separate
    "is registered" flags to drift apart.
    """

    def __init__(
        self,
        event: Event,
        session: IdentitySession,
        store: DataStore,
        email_sender: EmailSender,
        notifier: InAppNotifier,
        individual_status: RegistrationStatus = RegistrationStatus.CONFIRMED,
        clock: Callable[[], datetime] = utcnow,
        on_change: Callable[[RegistrationView], None] | None = None,
        member_workers: int = 4,
    ) -> None:
        self.event = event
        self.session = session
        self.store = store
        self.email_sender = email_sender
        self.notifier = notifier
        self.individual_status = RegistrationStatus(individual_status)
        self.clock = clock
        self.on_change = on_change
        self.member_workers = max(member_workers, 1)

        self._state = WorkflowState.UNCHECKED
        self._status: str | None = None
        self._message: str | None = None
        self._created = False
        self._unsubscribe = session.subscribe(self._on_identity_changed)

    @property
    def identity(self) -> Identity | None:
        return self.session.current_user()

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def view(self) -> RegistrationView:
        registered = self._state == WorkflowState.REGISTERED
        return RegistrationView(
            state=self._state,
            label=self._label(),
            status=self._status if registered else None,
            message=self._message,
            badge_color=badge_color(self._status) if registered else None,
            can_submit=self._can_submit(),
            created=self._created,
        )

    def close(self) -> None:
        """Stop listening for identity changes."""
        self._unsubscribe()

    def load(self) -> RegistrationView:
        """
        Rehydrate the state from the store.

        Signed out: stay UNCHECKED without querying. Signed in: look up
        the (user_id, event_id) registration row.
        """
        identity = self.identity
        if identity is None:
            self._transition(WorkflowState.UNCHECKED)
            return self.view

        self._transition(WorkflowState.CHECKING)
        try:
            status = self._fetch_status(identity)
        except StoreError as e:
            logger.error("Error checking registration for event %s: %s", self.event.id, e)
            status = None

        if status is not None:
            self._transition(WorkflowState.REGISTERED, status=status)
        else:
            self._transition(WorkflowState.NOT_REGISTERED)
        return self.view

    def submit(self, form: RegistrationForm) -> RegistrationView:
        """
        Submit a registration.

        Never raises: ineligibility, duplicates and store failures all
        end in a view carrying a user-visible message.
        """
        if self._state == WorkflowState.UNCHECKED:
            self.load()

        identity = self.identity
        if identity is None:
            reason = check_eligibility(None, self.event, self.clock()).reason
            self._transition(WorkflowState.UNCHECKED, message=reason.message)
            return self.view

        if self._state == WorkflowState.REGISTERED:
            self._created = False
            self._transition(
                WorkflowState.REGISTERED, status=self._status, message=ALREADY_REGISTERED
            )
            return self.view

        self._created = False
        self._transition(WorkflowState.SUBMITTING)
        try:
            status, message, created = self._register(identity, form)
        except NotEligible as e:
            self._transition(WorkflowState.NOT_REGISTERED, message=e.reason.message)
            return self.view
        except InvalidTeam as e:
            self._transition(WorkflowState.NOT_REGISTERED, message=str(e))
            return self.view
        except StoreError as e:
            logger.error("Registration failed for event %s: %s", self.event.id, e)
            return self._fail()
        except Exception:
            logger.exception("Unexpected error registering for event %s", self.event.id)
            return self._fail()

        self._created = created
        self._transition(WorkflowState.REGISTERED, status=status, message=message)
        return self.view

    def _register(self, identity: Identity, form: RegistrationForm) -> tuple[str, str, bool]:
        self._check_open(identity)

        # A user already holding a seat is never told the event is full.
        existing = self._fetch_status(identity)
        if existing is not None:
            return existing, ALREADY_REGISTERED, False

        try:
            self._check_capacity(identity)
        except NotEligible:
            # The last place may just have gone to a concurrent submit by this user.
            existing = self._fetch_status(identity)
            if existing is not None:
                return existing, ALREADY_REGISTERED, False
            raise

        roster = self._validate_team(form) if self.event.is_team_based else None

        self._ensure_profile(identity)
        self.store.upsert("users", {"id": identity.id, **form.profile_fields()})

        try:
            if roster is not None:
                status = self._register_team(identity, form.team_name.strip(), roster)
            else:
                status = self._insert_registration(identity, self.individual_status)
        except DuplicateKeyError:
            logger.info(
                "Duplicate registration for user %s event %s", identity.id, self.event.id
            )
            existing = self._fetch_status(identity)
            if existing is None:
                raise StoreError("Registration exists but could not be read") from None
            return existing, ALREADY_REGISTERED, False

        self._notify(identity, status)
        return status, REGISTRATION_SUCCESS, True

    def _check_open(self, identity: Identity) -> None:
        eligibility = check_eligibility(identity, self.event, self.clock())
        if not eligibility.allowed:
            raise NotEligible(eligibility.reason)

    def _check_capacity(self, identity: Identity) -> None:
        """
        Early capacity check.

        The capacity trigger on registrations is the authority; this only
        spares a full event the profile and team writes.
        """
        if self.event.max_participants is None:
            return
        count = self.store.count("registrations", {"event_id": self.event.id})
        eligibility = check_eligibility(identity, self.event, self.clock(), count)
        if not eligibility.allowed:
            raise NotEligible(eligibility.reason)

    def _ensure_profile(self, identity: Identity) -> None:
        """Create the profile from identity claims if this is the user's first write."""
        if self.store.select_one("users", {"id": identity.id}) is not None:
            return
        try:
            self.store.insert("users", identity.profile_seed())
        except DuplicateKeyError:
            logger.debug("Profile for %s created concurrently", identity.id)

    def _validate_team(self, form: RegistrationForm) -> TeamRoster:
        if not form.team_name or not form.team_name.strip():
            raise InvalidTeam("Team name is required")
        return TeamRoster.from_names(form.member_names, self.event.team_size_max)

    def _register_team(self, identity: Identity, team_name: str, roster: TeamRoster) -> str:
        team = self.store.insert(
            "teams",
            {"name": team_name, "leader_id": identity.id, "event_id": self.event.id},
        )
        self._insert_members(team["id"], roster.member_names())
        return self._insert_registration(identity, RegistrationStatus.PENDING)

    def _insert_members(self, team_id: Any, names: list[str]) -> None:
        """
        Insert member rows concurrently.

        Failures are logged and not rolled back; the team and the
        leader's registration are still written.
        """
        if not names:
            return

        def insert_member(name: str) -> None:
            self.store.insert(
                "team_members",
                {"team_id": team_id, "user_id": None, "member_name": name, "role": "member"},
            )

        workers = min(self.member_workers, len(names))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {name: executor.submit(insert_member, name) for name in names}

        failed = 0
        for name, future in futures.items():
            try:
                future.result()
            except StoreError as e:
                failed += 1
                logger.warning("Team member insert failed for team %s (%s): %s", team_id, name, e)
        if failed:
            logger.warning("%d of %d member rows missing for team %s", failed, len(names), team_id)

    def _insert_registration(self, identity: Identity, status: RegistrationStatus) -> str:
        row = self.store.insert(
            "registrations",
            {
                "user_id": identity.id,
                "event_id": self.event.id,
                "status": status.value,
                "registration_date": self.clock(),
            },
        )
        return row.get("status", status.value)

    def _fetch_status(self, identity: Identity) -> str | None:
        row = self.store.select_one(
            "registrations", {"user_id": identity.id, "event_id": self.event.id}
        )
        return row["status"] if row else None

    def _notify(self, identity: Identity, status: str) -> None:
        """Best-effort notifications; the registration is already committed."""
        kind = "team_registration" if self.event.is_team_based else "registration_confirmation"
        template_data: Mapping[str, Any] = {
            "name": identity.full_name,
            "event_id": self.event.id,
            "event_name": self.event.name,
            "event_date": self.event.event_date.isoformat(),
            "status": status,
        }

        if identity.email:
            try:
                self.email_sender.send_email(kind, identity.email, template_data)
            except Exception as e:
                logger.warning("Registration email to %s failed: %s", identity.email, e)
        else:
            logger.info("No email for user %s, skipping confirmation email", identity.id)

        try:
            self.notifier.create_notification(
                identity.id,
                "Registration successful",
                f"You are registered for {self.event.name}",
                "registration",
                {"event_id": self.event.id, "status": status},
            )
        except Exception as e:
            logger.warning("In-app notification for user %s failed: %s", identity.id, e)

    def _fail(self) -> RegistrationView:
        self._transition(WorkflowState.FAILED, message=REGISTRATION_FAILED)
        self._transition(WorkflowState.NOT_REGISTERED, message=REGISTRATION_FAILED)
        return self.view

    def _on_identity_changed(self, identity: Identity | None) -> None:
        self._created = False
        self._state = WorkflowState.UNCHECKED
        self.load()

    def _transition(
        self, state: WorkflowState, status: str | None = None, message: str | None = None
    ) -> None:
        self._state = state
        self._status = status
        self._message = message
        logger.debug("Event %s registration state -> %s (%s)", self.event.id, state.value, status)
        if self.on_change is not None:
            self.on_change(self.view)

    def _label(self) -> str:
        if self.identity is None:
            return SIGN_IN_LABEL
        if self._state == WorkflowState.CHECKING:
            return CHECKING_LABEL
        if self._state == WorkflowState.SUBMITTING:
            return REGISTERING_LABEL
        if self._state == WorkflowState.REGISTERED:
            return status_label(self._status)
        return REGISTER_TEAM_LABEL if self.event.is_team_based else REGISTER_LABEL

    def _can_submit(self) -> bool:
        if self._state != WorkflowState.NOT_REGISTERED:
            return False
        return check_eligibility(self.identity, self.event, self.clock()).allowed
