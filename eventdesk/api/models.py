"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import date, datetime, time
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, computed_field

from eventdesk.domain.ports import WorkflowState


class RegistrationRequest(BaseModel):
    """Request model for an event registration."""

    full_name: str | None = Field(None, max_length=200)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=30)
    institution: str | None = Field(None, max_length=200)
    team_name: str | None = Field(None, max_length=100, description="Required for team events")
    members: list[str] = Field(
        default_factory=list,
        max_length=50,
        description="Team member names; blank entries are ignored",
    )


class RegistrationViewResponse(BaseModel):
    """Current registration state for the signed-in user and an event."""

    model_config = ConfigDict(from_attributes=True)

    state: WorkflowState
    label: str
    status: str | None = None
    message: str | None = None
    badge_color: str | None = None
    can_submit: bool
    created: bool = False


class CountdownResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    days: int
    hours: int
    minutes: int
    seconds: int


class EventSummary(BaseModel):
    """Event card in the listing."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    event_type: str
    event_date: datetime
    platform: str
    is_team_based: bool
    is_paid: bool
    price: Decimal


class EventDetail(EventSummary):
    """Event page with rules broken out and the countdown."""

    description: str
    event_time: time | None
    registration_deadline: datetime
    team_size_min: int
    team_size_max: int
    max_participants: int | None
    is_active: bool
    image_url: str | None
    rules: str | None
    requirements: list[str]
    prizes: list[str]
    countdown: CountdownResponse


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: str
    institution: str
    phone: str
    profile_picture: str | None = None
    gender: str | None = None
    date_of_birth: date | None = None
    t_shirt_size: str | None = None
    bio: str | None = None

    @computed_field
    @property
    def qr_payload(self) -> str:
        """Check-in QR code content: the user id scanned at the venue."""
        return self.id


class ProfileUpdateRequest(BaseModel):
    """Editable profile fields; omitted fields are left unchanged."""

    institution: str | None = Field(None, max_length=200)
    phone: str | None = Field(None, max_length=30)
    gender: str | None = Field(None, max_length=30)
    date_of_birth: date | None = None
    t_shirt_size: str | None = Field(None, max_length=10)
    bio: str | None = Field(None, max_length=2000)


class RegistrationSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | str | None
    event_id: int
    event_name: str
    event_type: str
    event_date: datetime | None
    status: str
    status_text: str
    badge_color: str
    registration_date: datetime | None
    is_paid: bool
    platform: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
