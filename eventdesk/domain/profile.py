"""
Profile synchronization - Reconciles stored profiles with identity claims.

A profile row is created lazily, seeded from the identity provider's
claims (Identity.profile_seed), the first time it is loaded or the first
time the user registers. The registration workflow then merges its
contact fields into that row.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from typing import Any

from .exceptions import ProfileError, StoreError
from .ports import DataStore, Identity
from .registration import badge_color, status_text

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("institution", "phone", "gender", "date_of_birth", "t_shirt_size", "bio")


@dataclass(frozen=True)
class UserProfile:
    id: str
    email: str = ""
    full_name: str = ""
    institution: str = ""
    phone: str = ""
    profile_picture: str | None = None
    gender: str | None = None
    date_of_birth: date | None = None
    t_shirt_size: str | None = None
    bio: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "UserProfile":
        names = {f.name for f in fields(cls)}
        values = {key: value for key, value in row.items() if key in names}
        for text_field in ("email", "full_name", "institution", "phone"):
            if values.get(text_field) is None:
                values[text_field] = ""
        return cls(**values)

    def editable(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in EDITABLE_FIELDS}


@dataclass(frozen=True)
class RegistrationSummary:
    """A user's registration joined with its event, for the profile page."""

    id: Any
    event_id: int
    event_name: str
    event_type: str
    event_date: datetime | None
    status: str
    status_text: str
    badge_color: str
    registration_date: datetime | None
    is_paid: bool = False
    platform: str = ""


class ProfileService:
    """Loads, lazily creates and updates user profiles."""

    def __init__(self, store: DataStore) -> None:
        self.store = store

    def load(self, identity: Identity) -> UserProfile:
        """
        Fetch the profile, creating it from identity claims if absent.

        Raises:
            ProfileError: If the profile cannot be read or created
        """
        try:
            row = self.store.select_one("users", {"id": identity.id})
            if row is None:
                logger.info("Creating profile for user %s", identity.id)
                row = self.store.insert("users", identity.profile_seed())
        except StoreError as e:
            logger.error("Error fetching profile for %s: %s", identity.id, e)
            raise ProfileError("Failed to load profile") from e
        return UserProfile.from_row(row)

    def save(self, identity: Identity, changes: Mapping[str, Any]) -> None:
        """
        Persist editable fields by identifier.

        Raises:
            ProfileError: If the update fails or no row was updated
        """
        payload = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS}
        try:
            updated = self.store.update("users", {"id": identity.id}, payload)
        except StoreError as e:
            logger.error("Error updating profile for %s: %s", identity.id, e)
            raise ProfileError("Failed to update profile") from e
        if updated == 0:
            raise ProfileError("Failed to update profile")

    def registrations(self, identity: Identity) -> list[RegistrationSummary]:
        """The user's registrations, newest first, with event details."""
        rows = self.store.select(
            "registrations",
            {"user_id": identity.id},
            order_by="registration_date",
            descending=True,
        )
        events: dict[int, dict[str, Any] | None] = {}
        summaries = []
        for row in rows:
            event_id = row["event_id"]
            if event_id not in events:
                events[event_id] = self.store.select_one("events", {"id": event_id})
            event = events[event_id] or {}
            summaries.append(
                RegistrationSummary(
                    id=row.get("id"),
                    event_id=event_id,
                    event_name=event.get("name", ""),
                    event_type=event.get("event_type", ""),
                    event_date=event.get("event_date"),
                    status=row["status"],
                    status_text=status_text(row["status"]),
                    badge_color=badge_color(row["status"]),
                    registration_date=row.get("registration_date"),
                    is_paid=event.get("is_paid", False),
                    platform=event.get("platform", ""),
                )
            )
        return summaries


@dataclass
class ProfileEditor:
    """
    Edit-form state for a profile.

    Read-only mode shows the persisted values; editing works on a local
    draft. Cancel resets the draft from the last persisted values; Save
    replaces the persisted copy only when the store accepted the draft.
    """

    service: ProfileService
    identity: Identity
    persisted: UserProfile | None = None
    draft: dict[str, Any] = field(default_factory=dict)
    editing: bool = False
    error: str | None = None

    def load(self) -> UserProfile:
        self.persisted = self.service.load(self.identity)
        self.draft = self.persisted.editable()
        self.editing = False
        return self.persisted

    def begin_edit(self) -> None:
        if self.persisted is None:
            self.load()
        self.draft = self.persisted.editable()
        self.editing = True

    def change(self, **values: Any) -> None:
        unknown = set(values) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")
        self.draft.update(values)

    def cancel(self) -> None:
        self.draft = self.persisted.editable() if self.persisted is not None else {}
        self.editing = False
        self.error = None

    def save(self) -> bool:
        """Persist the draft; returns False and keeps editing on failure."""
        try:
            self.service.save(self.identity, self.draft)
        except ProfileError as e:
            self.error = str(e)
            return False
        self.persisted = replace(self.persisted, **self.draft)
        self.editing = False
        self.error = None
        return True
