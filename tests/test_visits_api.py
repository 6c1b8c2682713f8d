"""Tests for the visits REST API.

Covers:
- camelCase request/response bodies
- Domain error → HTTP status mapping (404, 400, 409)
- Closed enums rejected at the boundary (422)
- Route ordering (/visits/me/today vs /visits/{id})
- dateIso parsing, cancel 204, test-mail endpoint
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from fieldvisits.api import mail, visits
from fieldvisits.api.errors import register_exception_handlers
from fieldvisits.db.engine import get_session
from fieldvisits.errors import (
    InvalidStateTransition,
    VisitConflict,
    VisitNotFound,
    VisitValidationError,
)
from fieldvisits.models.enums import EmailStatus, NoteVisibility, VisitEventType, VisitState
from fieldvisits.models.visit import Visit
from fieldvisits.models.visit_email import VisitEmail
from fieldvisits.models.visit_event import VisitEvent
from fieldvisits.models.visit_note import VisitNote
from fieldvisits.visits.queries import Page

# ── Helpers ──────────────────────────────────────────────────────────

START = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)
END = datetime(2026, 3, 10, 10, 0, tzinfo=UTC)


def _make_visit() -> Visit:
    visit = Visit.planned(
        customer_id=uuid.uuid4(),
        site_id=uuid.uuid4(),
        technician_id=uuid.uuid4(),
        start=START,
        end=END,
        purpose="Boiler check",
    )
    visit.created_at = START
    visit.updated_at = START
    return visit


def _create_body(**overrides) -> dict[str, object]:
    body: dict[str, object] = {
        "customerId": str(uuid.uuid4()),
        "siteId": str(uuid.uuid4()),
        "technicianId": str(uuid.uuid4()),
        "scheduledStartAt": START.isoformat(),
        "scheduledEndAt": END.isoformat(),
        "priority": "HIGH",
        "purpose": "Boiler check",
    }
    body.update(overrides)
    return body


@pytest.fixture
def mock_service():
    """Patch the visit service used by the router."""
    service = MagicMock()
    for name in (
        "create_planned",
        "update_planned",
        "check_in",
        "check_out",
        "cancel",
        "mark_no_show",
        "list",
        "my_visits_today",
        "events",
        "add_note",
        "notes",
        "emails",
        "get_by_id",
    ):
        setattr(service, name, AsyncMock())
    with patch("fieldvisits.api.visits.visit_service", service):
        yield service


@pytest.fixture
def client(mock_service):
    """Create test client with the service and DB session mocked."""
    test_app = FastAPI()
    test_app.include_router(visits.router)
    test_app.include_router(mail.router)
    register_exception_handlers(test_app)

    async def fake_session():
        yield AsyncMock()

    test_app.dependency_overrides[get_session] = fake_session
    return TestClient(test_app)


# ── Create / read ────────────────────────────────────────────────────


class TestCreateVisit:
    def test_camel_case_roundtrip(self, client, mock_service):
        visit = _make_visit()
        mock_service.create_planned.return_value = visit

        resp = client.post("/visits", json=_create_body())

        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == str(visit.id)
        assert data["state"] == "PLANNED"
        assert data["purpose"] == "Boiler check"
        assert "scheduledStartAt" in data
        assert data["checkInAt"] is None
        kwargs = mock_service.create_planned.call_args.kwargs
        assert kwargs["start"] == START
        assert kwargs["priority"].value == "HIGH"

    def test_unknown_priority_rejected(self, client, mock_service):
        resp = client.post("/visits", json=_create_body(priority="URGENT"))
        assert resp.status_code == 422
        mock_service.create_planned.assert_not_awaited()

    def test_validation_error_is_400(self, client, mock_service):
        mock_service.create_planned.side_effect = VisitValidationError(
            "scheduled_end_at must be after scheduled_start_at"
        )
        resp = client.post("/visits", json=_create_body(scheduledEndAt=START.isoformat()))
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"


class TestGetVisit:
    def test_found(self, client, mock_service):
        visit = _make_visit()
        mock_service.get_by_id.return_value = visit
        resp = client.get(f"/visits/{visit.id}")
        assert resp.status_code == 200
        assert resp.json()["technicianId"] == str(visit.technician_id)

    def test_not_found(self, client, mock_service):
        visit_id = uuid.uuid4()
        mock_service.get_by_id.side_effect = VisitNotFound(visit_id)
        resp = client.get(f"/visits/{visit_id}")
        assert resp.status_code == 404
        assert resp.json() == {
            "error": "not_found",
            "detail": f"Visit not found: {visit_id}",
            "visitId": str(visit_id),
        }

    def test_malformed_id(self, client):
        resp = client.get("/visits/not-a-uuid")
        assert resp.status_code == 422


# ── Commands ─────────────────────────────────────────────────────────


class TestUpdateVisit:
    def test_started_visit_is_409(self, client, mock_service):
        visit_id = uuid.uuid4()
        mock_service.update_planned.side_effect = InvalidStateTransition(visit_id, "update", "STARTED")
        resp = client.patch(f"/visits/{visit_id}", json={"purpose": "New"})
        assert resp.status_code == 409
        data = resp.json()
        assert data["error"] == "invalid_state_transition"
        assert data["command"] == "update"
        assert data["currentState"] == "STARTED"

    def test_partial_body(self, client, mock_service):
        visit = _make_visit()
        mock_service.update_planned.return_value = visit
        resp = client.patch(f"/visits/{visit.id}", json={"notesPlanned": "Bring ladder"})
        assert resp.status_code == 200
        kwargs = mock_service.update_planned.call_args.kwargs
        assert kwargs["notes_planned"] == "Bring ladder"
        assert kwargs["start"] is None
        assert kwargs["technician_id"] is None


class TestCheckInOut:
    def test_check_in_passes_actor_and_geo(self, client, mock_service):
        visit = _make_visit()
        visit.start(START)
        mock_service.check_in.return_value = visit
        actor = uuid.uuid4()

        resp = client.post(
            f"/visits/{visit.id}/check-in",
            json={"actorId": str(actor), "lat": 45.0, "lng": 9.0},
        )

        assert resp.status_code == 200
        assert resp.json()["state"] == "STARTED"
        args = mock_service.check_in.call_args
        assert args.args[1:] == (visit.id, actor)
        assert args.kwargs == {"when": None, "lat": 45.0, "lng": 9.0}

    def test_check_out_work_summary(self, client, mock_service):
        visit = _make_visit()
        visit.start(START)
        visit.complete(END)
        mock_service.check_out.return_value = visit

        resp = client.post(
            f"/visits/{visit.id}/check-out",
            json={"actorId": str(uuid.uuid4()), "when": END.isoformat(), "workSummary": "Done"},
        )

        assert resp.status_code == 200
        assert resp.json()["state"] == "DONE"
        assert mock_service.check_out.call_args.kwargs["work_summary"] == "Done"

    def test_conflict_is_409(self, client, mock_service):
        visit_id = uuid.uuid4()
        mock_service.check_in.side_effect = VisitConflict(visit_id)
        resp = client.post(f"/visits/{visit_id}/check-in", json={"actorId": str(uuid.uuid4())})
        assert resp.status_code == 409
        assert resp.json()["error"] == "conflict"


class TestCancelAndNoShow:
    def test_cancel_returns_204(self, client, mock_service):
        visit_id = uuid.uuid4()
        actor = uuid.uuid4()
        mock_service.cancel.return_value = None
        resp = client.post(f"/visits/{visit_id}/cancel", params={"actorId": str(actor)})
        assert resp.status_code == 204
        assert resp.content == b""
        assert mock_service.cancel.call_args.args[1:] == (visit_id, actor)

    def test_cancel_done_is_409(self, client, mock_service):
        visit_id = uuid.uuid4()
        mock_service.cancel.side_effect = InvalidStateTransition(visit_id, "cancel", "DONE")
        resp = client.post(f"/visits/{visit_id}/cancel")
        assert resp.status_code == 409

    def test_no_show(self, client, mock_service):
        visit = _make_visit()
        visit.no_show()
        mock_service.mark_no_show.return_value = visit
        resp = client.post(f"/visits/{visit.id}/no-show")
        assert resp.status_code == 200
        assert resp.json()["state"] == "NO_SHOW"


# ── Lists ────────────────────────────────────────────────────────────


class TestListVisits:
    def test_page_shape(self, client, mock_service):
        visit = _make_visit()
        mock_service.list.return_value = Page(content=[visit], total_elements=51, number=1, size=50)

        resp = client.get("/visits", params={"page": 1, "size": 50, "state": "PLANNED"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["totalElements"] == 51
        assert data["totalPages"] == 2
        assert data["number"] == 1
        assert data["size"] == 50
        assert data["content"][0]["id"] == str(visit.id)
        assert mock_service.list.call_args.kwargs["state"] == VisitState.PLANNED

    def test_from_to_aliases(self, client, mock_service):
        mock_service.list.return_value = Page(content=[], total_elements=0, number=0, size=50)
        resp = client.get(
            "/visits",
            params={"from": "2026-03-01T00:00:00Z", "to": "2026-03-31T23:59:59Z"},
        )
        assert resp.status_code == 200
        kwargs = mock_service.list.call_args.kwargs
        assert kwargs["from_"] == datetime(2026, 3, 1, tzinfo=UTC)
        assert kwargs["to"] == datetime(2026, 3, 31, 23, 59, 59, tzinfo=UTC)

    def test_unknown_state_rejected(self, client, mock_service):
        resp = client.get("/visits", params={"state": "ARCHIVED"})
        assert resp.status_code == 422
        mock_service.list.assert_not_awaited()


class TestMyVisitsToday:
    def test_not_shadowed_by_id_route(self, client, mock_service):
        mock_service.my_visits_today.return_value = []
        tech = uuid.uuid4()
        resp = client.get("/visits/me/today", params={"technicianId": str(tech), "dateIso": "2026-03-10"})
        assert resp.status_code == 200
        assert resp.json() == []
        assert mock_service.my_visits_today.call_args.args[1:] == (tech, date(2026, 3, 10))
        mock_service.get_by_id.assert_not_awaited()

    def test_invalid_date_is_400(self, client, mock_service):
        resp = client.get(
            "/visits/me/today", params={"technicianId": str(uuid.uuid4()), "dateIso": "10/03/2026"}
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"
        mock_service.my_visits_today.assert_not_awaited()

    def test_missing_date_defaults_to_today(self, client, mock_service):
        mock_service.my_visits_today.return_value = []
        resp = client.get("/visits/me/today", params={"technicianId": str(uuid.uuid4())})
        assert resp.status_code == 200
        assert mock_service.my_visits_today.call_args.args[2] == datetime.now(UTC).date()


# ── Events, notes, emails ────────────────────────────────────────────


class TestChildResources:
    def test_events(self, client, mock_service):
        visit_id = uuid.uuid4()
        event = VisitEvent.of(visit_id, VisitEventType.SCHEDULED.value)
        event.created_at = START
        mock_service.events.return_value = [event]

        resp = client.get(f"/visits/{visit_id}/events")

        assert resp.status_code == 200
        assert resp.json()[0]["type"] == "VisitScheduled"
        assert resp.json()[0]["visitId"] == str(visit_id)

    def test_add_note(self, client, mock_service):
        visit_id = uuid.uuid4()
        author = uuid.uuid4()
        note = VisitNote.of(visit_id, author, NoteVisibility.CUSTOMER, "Gate code 1234")
        note.created_at = START
        mock_service.add_note.return_value = [note]

        resp = client.post(
            f"/visits/{visit_id}/notes",
            json={"authorId": str(author), "visibility": "CUSTOMER", "body": "Gate code 1234"},
        )

        assert resp.status_code == 200
        assert resp.json()[0]["visibility"] == "CUSTOMER"
        assert mock_service.add_note.call_args.args[1:] == (
            visit_id,
            author,
            NoteVisibility.CUSTOMER,
            "Gate code 1234",
        )

    def test_blank_note_is_400(self, client, mock_service):
        mock_service.add_note.side_effect = VisitValidationError("Note body must not be blank")
        resp = client.post(
            f"/visits/{uuid.uuid4()}/notes", json={"authorId": str(uuid.uuid4()), "body": "  "}
        )
        assert resp.status_code == 400

    def test_unknown_visibility_rejected(self, client, mock_service):
        resp = client.post(
            f"/visits/{uuid.uuid4()}/notes",
            json={"authorId": str(uuid.uuid4()), "visibility": "PUBLIC", "body": "x"},
        )
        assert resp.status_code == 422

    def test_emails(self, client, mock_service):
        visit_id = uuid.uuid4()
        email = VisitEmail.pending(visit_id, "ops@example.com", "Visit completed")
        email.mark_error("Connection refused")
        email.created_at = END
        email.updated_at = END
        mock_service.emails.return_value = [email]

        resp = client.get(f"/visits/{visit_id}/emails")

        assert resp.status_code == 200
        data = resp.json()[0]
        assert data["status"] == EmailStatus.ERROR.value
        assert data["errorMessage"] == "Connection refused"
        assert data["toEmail"] == "ops@example.com"


class TestTestMail:
    def test_reports_outcome(self, client):
        with patch(
            "fieldvisits.api.mail.visit_email_notifier.send_test_mail",
            new_callable=AsyncMock,
            return_value=(True, "Test mail sent to devnull@example.com"),
        ):
            resp = client.get("/test-mail")
        assert resp.status_code == 200
        assert resp.text == "Test mail sent to devnull@example.com"
