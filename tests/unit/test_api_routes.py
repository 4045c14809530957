"""
Unit tests for API v1 routes.

Tests endpoint responses with the in-memory store and mocked
dispatchers injected through dependency overrides.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from eventdesk.api import dependencies
from eventdesk.api.dependencies import (
    get_email_sender,
    get_identity_session,
    get_notifier,
    get_store,
)
from eventdesk.api.v1.routes import router
from eventdesk.config.settings import Settings, get_settings
from eventdesk.domain.exceptions import IdentityError
from eventdesk.domain.identity import IdentitySession
from eventdesk.domain.ports import Identity
from eventdesk.domain.registration import ALREADY_REGISTERED

AUTH = {"Authorization": "Bearer test-token"}


def event_row(**overrides) -> dict:
    now = datetime.now(timezone.utc)
    row = {
        "id": 1,
        "name": "CodeSprint",
        "event_type": "Online Coding",
        "event_date": now + timedelta(days=7),
        "registration_deadline": now + timedelta(days=1),
        "is_active": True,
        "is_team_based": False,
        "team_size_min": 1,
        "team_size_max": 1,
        "platform": "Discord",
        "description": "A 24 hour coding sprint",
        "rules": "Requirement: Laptop\nPrize: Trophy",
    }
    row.update(overrides)
    return row


@pytest.fixture
def signed_in() -> dict:
    """Holder for the identity the overridden session returns."""
    return {"identity": Identity(id="user_123", full_name="Ada Lovelace", email="ada@example.com")}


@pytest.fixture
def email_sender() -> Mock:
    return Mock()


@pytest.fixture
def app(store, signed_in, email_sender):
    """Create test FastAPI application with overridden dependencies."""
    test_app = FastAPI()
    test_app.include_router(router, prefix="/v1")
    test_app.state.pool = MagicMock()

    test_app.dependency_overrides[get_store] = lambda: store
    test_app.dependency_overrides[get_email_sender] = lambda: email_sender
    test_app.dependency_overrides[get_notifier] = lambda: Mock()
    test_app.dependency_overrides[get_settings] = lambda: Settings(
        individual_registration_status="confirmed"
    )
    test_app.dependency_overrides[get_identity_session] = lambda: IdentitySession(
        signed_in["identity"]
    )
    yield test_app
    test_app.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


class TestListEvents:
    """Tests for GET /v1/events."""

    @pytest.fixture(autouse=True)
    def events(self, store) -> None:
        now = datetime.now(timezone.utc)
        store.seed("events", event_row(id=1, name="CodeSprint", event_date=now + timedelta(days=9)))
        store.seed(
            "events",
            event_row(id=2, name="Robo Race", event_type="Offline Robotics", event_date=now + timedelta(days=3)),
        )
        store.seed("events", event_row(id=3, name="Old Quiz", is_active=False))

    def test_lists_active_events_by_date(self, client: TestClient) -> None:
        response = client.get("/v1/events")

        assert response.status_code == 200
        assert [event["name"] for event in response.json()] == ["Robo Race", "CodeSprint"]

    def test_search(self, client: TestClient) -> None:
        response = client.get("/v1/events", params={"search": "sprint"})

        assert [event["id"] for event in response.json()] == [1]

    def test_mode_tab(self, client: TestClient) -> None:
        response = client.get("/v1/events", params={"mode": "offline"})

        assert [event["id"] for event in response.json()] == [2]

    def test_invalid_mode_returns_422(self, client: TestClient) -> None:
        assert client.get("/v1/events", params={"mode": "hybrid"}).status_code == 422

    def test_store_failure_returns_503(self, client: TestClient, store) -> None:
        store.fail_on.add(("select", "events"))

        response = client.get("/v1/events")

        assert response.status_code == 503
        assert response.json() == {"detail": "Failed to load events"}


class TestEventDetail:
    """Tests for GET /v1/events/{event_id}."""

    def test_detail(self, client: TestClient, store) -> None:
        store.seed("events", event_row())

        response = client.get("/v1/events/1")

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "CodeSprint"
        assert body["requirements"] == ["Laptop"]
        assert body["prizes"] == ["Trophy"]
        assert body["countdown"]["days"] in (6, 7)

    def test_unknown_event_returns_404(self, client: TestClient) -> None:
        response = client.get("/v1/events/42")

        assert response.status_code == 404
        assert response.json() == {"detail": "Event not found"}


class TestRegistrationEndpoints:
    """Tests for GET/POST /v1/events/{event_id}/registration."""

    def test_signed_out_view(self, client: TestClient, store, signed_in) -> None:
        store.seed("events", event_row())
        signed_in["identity"] = None

        response = client.get("/v1/events/1/registration")

        assert response.status_code == 200
        assert response.json()["state"] == "unchecked"
        assert response.json()["label"] == "Sign In to Register"
        assert response.json()["can_submit"] is False

    def test_not_registered_view(self, client: TestClient, store) -> None:
        store.seed("events", event_row())

        body = client.get("/v1/events/1/registration").json()

        assert body["state"] == "not_registered"
        assert body["label"] == "Register Now"
        assert body["can_submit"] is True

    def test_register_returns_201(self, client: TestClient, store, email_sender) -> None:
        store.seed("events", event_row())

        response = client.post(
            "/v1/events/1/registration", json={"phone": "555-0100", "institution": "MIT"}
        )

        assert response.status_code == 201
        body = response.json()
        assert body["state"] == "registered"
        assert body["status"] == "confirmed"
        assert body["label"] == "Registered ✓"
        assert body["created"] is True
        assert len(store.rows("registrations")) == 1
        email_sender.send_email.assert_called_once()

    def test_second_register_is_already_registered(self, client: TestClient, store) -> None:
        store.seed("events", event_row())
        client.post("/v1/events/1/registration", json={})

        response = client.post("/v1/events/1/registration", json={})

        assert response.status_code == 200
        assert response.json()["message"] == ALREADY_REGISTERED
        assert response.json()["created"] is False
        assert len(store.rows("registrations")) == 1

    def test_inactive_event(self, client: TestClient, store) -> None:
        store.seed("events", event_row(is_active=False))

        response = client.post("/v1/events/1/registration", json={})

        assert response.status_code == 200
        assert response.json()["state"] == "not_registered"
        assert response.json()["message"] == "Registration closed"
        assert store.writes == []

    def test_team_registration(self, client: TestClient, store) -> None:
        store.seed("events", event_row(is_team_based=True, team_size_min=2, team_size_max=5))

        response = client.post(
            "/v1/events/1/registration",
            json={"team_name": "Byte Busters", "members": ["Grace", "Alan", "Linus"]},
        )

        assert response.status_code == 201
        assert response.json()["status"] == "pending"
        assert len(store.rows("teams")) == 1
        assert len(store.rows("team_members")) == 3

    def test_invalid_email_returns_422(self, client: TestClient, store) -> None:
        store.seed("events", event_row())

        response = client.post("/v1/events/1/registration", json={"email": "not-an-email"})

        assert response.status_code == 422
        assert store.writes == []

    def test_unknown_event_returns_404(self, client: TestClient) -> None:
        assert client.post("/v1/events/9/registration", json={}).status_code == 404


class TestProfileEndpoints:
    """Tests for /v1/profile."""

    def test_requires_sign_in(self, client: TestClient, signed_in) -> None:
        signed_in["identity"] = None

        response = client.get("/v1/profile")

        assert response.status_code == 401
        assert response.json() == {"detail": "Sign in required"}

    def test_profile_created_on_first_visit(self, client: TestClient, store) -> None:
        response = client.get("/v1/profile")

        assert response.status_code == 200
        assert response.json()["full_name"] == "Ada Lovelace"
        assert response.json()["qr_payload"] == "user_123"
        assert len(store.rows("users")) == 1

    def test_update_profile(self, client: TestClient, store) -> None:
        response = client.put(
            "/v1/profile", json={"phone": "555-0100", "date_of_birth": "1990-05-01"}
        )

        assert response.status_code == 200
        assert response.json()["phone"] == "555-0100"
        assert response.json()["date_of_birth"] == "1990-05-01"
        assert store.rows("users")[0]["phone"] == "555-0100"

    def test_update_failure_returns_503(self, client: TestClient, store) -> None:
        store.fail_on.add(("update", "users"))

        response = client.put("/v1/profile", json={"bio": "hello"})

        assert response.status_code == 503
        assert response.json() == {"detail": "Failed to update profile"}

    def test_load_failure_returns_503(self, client: TestClient, store) -> None:
        store.fail_on.add(("select_one", "users"))

        assert client.get("/v1/profile").status_code == 503

    def test_my_registrations(self, client: TestClient, store) -> None:
        store.seed("events", event_row())
        client.post("/v1/events/1/registration", json={})

        response = client.get("/v1/profile/registrations")

        assert response.status_code == 200
        (registration,) = response.json()
        assert registration["event_name"] == "CodeSprint"
        assert registration["status_text"] == "Confirmed"
        assert registration["badge_color"] == "green"


class TestBearerAuthentication:
    """Tests for the identity session built from the Authorization header."""

    @pytest.fixture
    def app_with_auth(self, app: FastAPI, store) -> FastAPI:
        del app.dependency_overrides[get_identity_session]
        store.seed("events", event_row())
        return app

    def test_no_header_is_signed_out(self, app_with_auth: FastAPI) -> None:
        body = TestClient(app_with_auth).get("/v1/events/1/registration").json()

        assert body["state"] == "unchecked"

    def test_valid_token(self, app_with_auth: FastAPI, monkeypatch) -> None:
        verifier = Mock()
        verifier.verify.return_value = Identity(id="user_123")
        monkeypatch.setattr(dependencies, "get_identity_verifier", lambda: verifier)

        body = TestClient(app_with_auth).get("/v1/events/1/registration", headers=AUTH).json()

        assert body["state"] == "not_registered"
        verifier.verify.assert_called_once_with("test-token")

    def test_invalid_token_returns_401(self, app_with_auth: FastAPI, monkeypatch) -> None:
        verifier = Mock()
        verifier.verify.side_effect = IdentityError("Token validation failed: expired")
        monkeypatch.setattr(dependencies, "get_identity_verifier", lambda: verifier)

        response = TestClient(app_with_auth).get("/v1/events/1/registration", headers=AUTH)

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert "expired" in response.json()["detail"]

    def test_unconfigured_provider_returns_401(self, app_with_auth: FastAPI, monkeypatch) -> None:
        def unconfigured():
            raise ValueError("A Clerk JWKS URL must be configured")

        monkeypatch.setattr(dependencies, "get_identity_verifier", unconfigured)

        response = TestClient(app_with_auth).get("/v1/events/1/registration", headers=AUTH)

        assert response.status_code == 401
        assert response.json() == {"detail": "Token validation failed"}


class TestHealth:
    """Tests for GET /health on the real application."""

    def test_health(self, monkeypatch) -> None:
        from eventdesk.api.main import app

        pool = MagicMock()
        monkeypatch.setattr(app.state, "pool", pool, raising=False)

        response = TestClient(app).get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
        pool.connection.assert_called_once()
