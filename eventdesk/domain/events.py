"""
Event model and catalogue helpers.

Events are created and edited by organizers outside this service;
the registration core only reads them. The helpers here back the
event listing (search and online/offline tabs) and the event detail
page (requirements, prizes and the countdown to the event date).
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

ONLINE_MARKERS = ("online", "drive")
OFFLINE_MARKERS = ("offline", "site")


class EventMode(str, Enum):
    """Listing tabs."""

    ALL = "all"
    ONLINE = "online"
    OFFLINE = "offline"


@dataclass(frozen=True)
class Event:
    """Read-only view of an events row."""

    id: int
    name: str
    event_type: str
    event_date: datetime
    registration_deadline: datetime
    is_active: bool = True
    is_team_based: bool = False
    team_size_min: int = 1
    team_size_max: int = 1
    max_participants: int | None = None
    is_paid: bool = False
    price: Decimal = Decimal("0")
    description: str = ""
    platform: str = ""
    event_time: time | None = None
    rules: str | None = None
    image_url: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Event":
        """Build an Event from a store row, ignoring unknown columns."""
        fields = cls.__dataclass_fields__
        return cls(**{key: value for key, value in row.items() if key in fields})


@dataclass(frozen=True)
class Countdown:
    days: int
    hours: int
    minutes: int
    seconds: int


def matches_mode(event: Event, mode: EventMode) -> bool:
    """Check whether an event belongs to a listing tab, by its type."""
    event_type = event.event_type.lower()
    if mode == EventMode.ONLINE:
        return any(marker in event_type for marker in ONLINE_MARKERS)
    if mode == EventMode.OFFLINE:
        return any(marker in event_type for marker in OFFLINE_MARKERS)
    return True


def filter_events(
    events: Iterable[Event], search: str = "", mode: EventMode = EventMode.ALL
) -> list[Event]:
    """
    Filter events by a free-text search term and a listing tab.

    The search is case-insensitive and matches the name or the type.
    """
    term = search.strip().lower()
    result = []
    for event in events:
        if term and term not in event.name.lower() and term not in event.event_type.lower():
            continue
        if matches_mode(event, mode):
            result.append(event)
    return result


def _prefixed_lines(rules: str | None, prefix: str) -> list[str]:
    if not rules:
        return []
    return [
        line.strip()[len(prefix) :].strip()
        for line in rules.split("\n")
        if line.strip().startswith(prefix)
    ]


def requirements(rules: str | None) -> list[str]:
    """Lines of the rules text prefixed with "Requirement:"."""
    return _prefixed_lines(rules, "Requirement:")


def prizes(rules: str | None) -> list[str]:
    """Lines of the rules text prefixed with "Prize:"."""
    return _prefixed_lines(rules, "Prize:")


def countdown(event_date: datetime, now: datetime) -> Countdown:
    """Time left until the event; all zero once it has started."""
    remaining = int((event_date - now).total_seconds())
    if remaining <= 0:
        return Countdown(0, 0, 0, 0)
    days, remaining = divmod(remaining, 86400)
    hours, remaining = divmod(remaining, 3600)
    minutes, seconds = divmod(remaining, 60)
    return Countdown(days, hours, minutes, seconds)
