"""
API v1 routes.

Defines REST endpoints for event browsing, registration and profiles.
Endpoints are plain functions: FastAPI runs them in its worker thread
pool, so blocking store calls never stall other requests.
"""

from dataclasses import asdict
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from eventdesk.api.dependencies import (
    get_event,
    get_profile_service,
    get_registration_workflow,
    get_store,
    require_identity,
)
from eventdesk.api.models import (
    ErrorResponse,
    EventDetail,
    EventSummary,
    ProfileResponse,
    ProfileUpdateRequest,
    RegistrationRequest,
    RegistrationSummaryResponse,
    RegistrationViewResponse,
)
from eventdesk.domain.events import Event, EventMode, countdown, filter_events, prizes, requirements
from eventdesk.domain.exceptions import ProfileError, StoreError
from eventdesk.domain.ports import DataStore, Identity
from eventdesk.domain.profile import ProfileEditor, ProfileService
from eventdesk.domain.registration import RegistrationForm, RegistrationWorkflow

router = APIRouter(tags=["v1"])


def _unavailable(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


@router.get(
    "/events",
    response_model=list[EventSummary],
    summary="List active events",
)
def list_events(
    search: str = Query("", max_length=100, description="Matches name or type"),
    mode: EventMode = Query(EventMode.ALL, description="all, online or offline"),
    store: DataStore = Depends(get_store),
) -> list[EventSummary]:
    """Active events ordered by date, filtered by search term and tab."""
    try:
        rows = store.select("events", {"is_active": True}, order_by="event_date")
    except StoreError:
        raise _unavailable("Failed to load events") from None
    events = filter_events([Event.from_row(row) for row in rows], search, mode)
    return [EventSummary.model_validate(event) for event in events]


@router.get(
    "/events/{event_id}",
    response_model=EventDetail,
    responses={404: {"model": ErrorResponse, "description": "Event not found"}},
    summary="Get event details",
)
def get_event_detail(event: Event = Depends(get_event)) -> EventDetail:
    now = datetime.now(timezone.utc)
    return EventDetail.model_validate(
        {
            **{
                name: getattr(event, name)
                for name in EventDetail.model_fields
                if hasattr(event, name)
            },
            "requirements": requirements(event.rules),
            "prizes": prizes(event.rules),
            "countdown": asdict(countdown(event.event_date, now)),
        }
    )


@router.get(
    "/events/{event_id}/registration",
    response_model=RegistrationViewResponse,
    responses={404: {"model": ErrorResponse, "description": "Event not found"}},
    summary="Get registration state",
)
def get_registration(
    workflow: RegistrationWorkflow = Depends(get_registration_workflow),
) -> RegistrationViewResponse:
    """
    Current registration state for the caller.

    Anonymous callers get the sign-in call to action without a lookup.
    """
    try:
        view = workflow.load()
    finally:
        workflow.close()
    return RegistrationViewResponse.model_validate(view)


@router.post(
    "/events/{event_id}/registration",
    response_model=RegistrationViewResponse,
    responses={
        201: {"model": RegistrationViewResponse, "description": "Registration created"},
        404: {"model": ErrorResponse, "description": "Event not found"},
        422: {"description": "Validation error"},
    },
    summary="Register for an event",
    description="Registers the caller individually or, for team events, as team leader. "
    "Ineligible, duplicate and failed attempts are reported in the body.",
)
def register(
    request_data: RegistrationRequest,
    response: Response,
    workflow: RegistrationWorkflow = Depends(get_registration_workflow),
) -> RegistrationViewResponse:
    form = RegistrationForm(
        full_name=request_data.full_name,
        email=request_data.email,
        phone=request_data.phone,
        institution=request_data.institution,
        team_name=request_data.team_name,
        member_names=tuple(request_data.members),
    )
    try:
        view = workflow.submit(form)
    finally:
        workflow.close()

    if view.created:
        response.status_code = status.HTTP_201_CREATED
    return RegistrationViewResponse.model_validate(view)


@router.get(
    "/profile",
    response_model=ProfileResponse,
    responses={401: {"model": ErrorResponse, "description": "Sign in required"}},
    summary="Get the caller's profile",
)
def get_profile(
    identity: Identity = Depends(require_identity),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    """Loads the profile, creating it from identity claims on first visit."""
    try:
        profile = service.load(identity)
    except ProfileError as e:
        raise _unavailable(str(e)) from None
    return ProfileResponse.model_validate(profile)


@router.put(
    "/profile",
    response_model=ProfileResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Sign in required"},
        503: {"model": ErrorResponse, "description": "Profile could not be saved"},
    },
    summary="Update the caller's profile",
)
def update_profile(
    request_data: ProfileUpdateRequest,
    identity: Identity = Depends(require_identity),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    editor = ProfileEditor(service=service, identity=identity)
    try:
        editor.load()
    except ProfileError as e:
        raise _unavailable(str(e)) from None

    editor.begin_edit()
    editor.change(**request_data.model_dump(exclude_unset=True))
    if not editor.save():
        raise _unavailable(editor.error or "Failed to update profile")
    return ProfileResponse.model_validate(editor.persisted)


@router.get(
    "/profile/registrations",
    response_model=list[RegistrationSummaryResponse],
    responses={401: {"model": ErrorResponse, "description": "Sign in required"}},
    summary="List the caller's registrations",
)
def list_my_registrations(
    identity: Identity = Depends(require_identity),
    service: ProfileService = Depends(get_profile_service),
) -> list[RegistrationSummaryResponse]:
    try:
        summaries = service.registrations(identity)
    except StoreError:
        raise _unavailable("Failed to load registrations") from None
    return [RegistrationSummaryResponse.model_validate(summary) for summary in summaries]
