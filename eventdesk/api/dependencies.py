"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting the data store,
notification dispatchers, the identity session and the registration
workflow into routes.
"""

import logging
from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status
from psycopg_pool import ConnectionPool

from eventdesk.adapters.identity.clerk import ClerkIdentityVerifier
from eventdesk.adapters.notifications.console import ConsoleEmailSender
from eventdesk.adapters.notifications.in_app import StoreNotifier
from eventdesk.adapters.repository.postgres import PostgresDataStore
from eventdesk.config.settings import Settings, get_settings
from eventdesk.domain.events import Event
from eventdesk.domain.exceptions import IdentityError, StoreError
from eventdesk.domain.identity import IdentitySession
from eventdesk.domain.ports import DataStore, Identity
from eventdesk.domain.profile import ProfileService
from eventdesk.domain.registration import RegistrationWorkflow

logger = logging.getLogger(__name__)

# Module-level singleton - ConsoleEmailSender is stateless
_email_sender = ConsoleEmailSender()


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_store(request: Request) -> PostgresDataStore:
    """Create data store with connection pool from app state."""
    return PostgresDataStore(get_pool(request))


def get_email_sender() -> ConsoleEmailSender:
    """Get console email sender (singleton)."""
    return _email_sender


def get_notifier(store: DataStore = Depends(get_store)) -> StoreNotifier:
    return StoreNotifier(store)


@lru_cache
def get_identity_verifier() -> ClerkIdentityVerifier:
    settings = get_settings()
    return ClerkIdentityVerifier(settings.clerk_jwks_url, issuer=settings.clerk_issuer)


def get_identity_session(request: Request) -> IdentitySession:
    """
    Build the identity session for this request.

    The Authorization header is read manually so anonymous requests are
    accepted; the session is then signed out.

    Raises:
        HTTPException: 401 if a bearer token is present but invalid
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return IdentitySession()

    token = auth_header[len("Bearer ") :]
    try:
        identity = get_identity_verifier().verify(token)
    except IdentityError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except ValueError:
        logger.error("Identity provider is not configured")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token validation failed",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    return IdentitySession(identity)


def require_identity(session: IdentitySession = Depends(get_identity_session)) -> Identity:
    """
    Require a signed-in identity.

    Raises:
        HTTPException: 401 when signed out
    """
    identity = session.current_user()
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign in required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def get_profile_service(store: DataStore = Depends(get_store)) -> ProfileService:
    return ProfileService(store)


def get_event(event_id: int, store: DataStore = Depends(get_store)) -> Event:
    """
    Load an event by id.

    Raises:
        HTTPException: 404 if the event does not exist, 503 on store failure
    """
    try:
        row = store.select_one("events", {"id": event_id})
    except StoreError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Event store unavailable",
        ) from None
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return Event.from_row(row)


def get_registration_workflow(
    event: Event = Depends(get_event),
    session: IdentitySession = Depends(get_identity_session),
    store: DataStore = Depends(get_store),
    email_sender: ConsoleEmailSender = Depends(get_email_sender),
    notifier: StoreNotifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> RegistrationWorkflow:
    """
    Create the registration workflow for this event and identity.

    Wires together the store, the dispatchers and the identity session.
    """
    return RegistrationWorkflow(
        event=event,
        session=session,
        store=store,
        email_sender=email_sender,
        notifier=notifier,
        individual_status=settings.individual_registration_status,
        member_workers=settings.team_member_workers,
    )
