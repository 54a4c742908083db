# event_portal/services/event_service.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from ..models import Event, EventDraft, Registration
from .http_client import ApiClient

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"


def _list_of(model, payload) -> list:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ValueError("expected a list")
    return [model.from_api(item) for item in payload]


def _message(payload, default: str) -> str:
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return default


class EventService:
    """Request/response mapping for the events and registrations API.

    Methods raise ``ApiError`` on failure, except ``get_event`` (404 is
    ``None``) and ``check_registration_status`` (never raises).
    """

    def __init__(self, client: ApiClient):
        self.client = client

    def list_events(self) -> List[Event]:
        return self.client.get("/api/events").map(lambda body: _list_of(Event, body)).unwrap()

    def get_event(self, event_id: int) -> Optional[Event]:
        result = self.client.get(f"/api/events/{event_id}", absent_on_404=True)
        return result.map(lambda body: None if body is None else Event.from_api(body)).unwrap()

    def create_event(self, draft: EventDraft) -> Event:
        return self.client.post("/api/events", json=draft.to_payload()).map(Event.from_api).unwrap()

    def update_event(self, event_id: int, draft: EventDraft) -> Event:
        return self.client.put(f"/api/events/{event_id}", json=draft.to_payload()).map(Event.from_api).unwrap()

    def update_event_title(self, event_id: int, title: str) -> Event:
        return self.client.put(f"/api/events/{event_id}/title", json={"title": title}).map(Event.from_api).unwrap()

    def delete_event(self, event_id: int) -> str:
        body = self.client.delete(f"/api/events/{event_id}").unwrap()
        return _message(body, "The event has been successfully deleted.")

    def register_for_event(self, event_id: int) -> str:
        body = self.client.post(f"/api/events/{event_id}/register").unwrap()
        return _message(body, "Registration successful")

    def deregister_from_event(self, event_id: int) -> str:
        body = self.client.delete(f"/api/events/{event_id}/register").unwrap()
        return _message(body, "Registration cancelled")

    def list_registrations_for_event(self, event_id: int) -> List[Registration]:
        result = self.client.get(f"/api/events/{event_id}/registrations")
        return result.map(lambda body: _list_of(Registration, body)).unwrap()

    def list_my_registrations(self) -> List[Registration]:
        result = self.client.get("/api/users/me/registrations")
        return result.map(lambda body: _list_of(Registration, body)).unwrap()

    def list_my_organized_events(self) -> List[Event]:
        return self.client.get("/api/users/me/events").map(lambda body: _list_of(Event, body)).unwrap()

    def check_registration_status(self, event_id: int) -> bool:
        try:
            result = self.client.get(f"/api/events/{event_id}/registrations/status")
        except Exception:
            logger.exception("Error checking registration status for event %s", event_id)
            return False

        if not result.is_ok:
            logger.info("Registration status check failed for event %s: %s", event_id, result.error.message)
            return False
        body = result.value
        return isinstance(body, dict) and body.get("isRegistered") is True


def categories(events: Iterable[Event]) -> List[str]:
    seen = []
    for e in events:
        if e.category and e.category not in seen:
            seen.append(e.category)
    return [ALL_CATEGORIES] + seen


def filter_events(events: Iterable[Event], category: Optional[str] = None, search: Optional[str] = None) -> List[Event]:
    result = list(events)

    if category and category != ALL_CATEGORIES:
        wanted = category.lower()
        result = [e for e in result if e.category.lower() == wanted]

    term = (search or "").strip().lower()
    if term:
        result = [
            e for e in result
            if term in e.title.lower() or term in e.description.lower() or term in e.location.lower()
        ]

    return result
