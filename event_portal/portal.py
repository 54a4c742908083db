"""Per-request wiring between Flask and the backend-facing services."""
from __future__ import annotations

from functools import wraps
from typing import Optional

import requests
from flask import current_app, flash, g, redirect, render_template, session, url_for
from flask_login import UserMixin

from .extensions import login_manager
from .models import UserSession
from .services.event_service import EventService
from .services.http_client import ApiClient, RequestCache
from .services.session_store import BrowserStorage, SessionStore


class PortalUser(UserMixin):
    """Flask-Login view of the backend-verified session."""

    def __init__(self, info: UserSession):
        self.info = info

    def get_id(self) -> str:
        return str(self.info.user_id)

    @property
    def id(self) -> int:
        return self.info.user_id

    @property
    def username(self) -> str:
        return self.info.username

    @property
    def email(self) -> str:
        return self.info.email

    @property
    def role(self) -> str:
        return self.info.role

    @property
    def is_organizer(self) -> bool:
        return self.info.is_organizer


def build_client(cookies: Optional[dict] = None) -> ApiClient:
    factory = current_app.config.get("API_SESSION_FACTORY") or requests.Session
    return ApiClient(
        current_app.config["API_BASE_URL"],
        cookies=cookies,
        timeout=current_app.config["API_TIMEOUT"],
        session=factory(),
        cache=RequestCache(),
    )


def get_store() -> SessionStore:
    store = g.get("session_store")
    if store is None:
        storage = BrowserStorage(session)
        store = SessionStore(build_client(storage.load_cookies()), storage)
        g.session_store = store
    return store


def get_events() -> EventService:
    service = g.get("event_service")
    if service is None:
        service = EventService(get_store().client)
        g.event_service = service
    return service


def current_session() -> Optional[UserSession]:
    store = get_store()
    store.verify_session()
    return store.current_user


@login_manager.request_loader
def load_user_from_backend(_request):
    info = current_session()
    return PortalUser(info) if info is not None else None


def persist_store(response):
    store = g.get("session_store")
    if store is not None:
        store.persist_cookies()
    return response


def _loading_response():
    response = current_app.make_response((render_template("loading.html"), 503))
    response.headers["Retry-After"] = "1"
    return response


def auth_required(view):
    """Redirect to login once the session check has settled and found no user.

    A view reached while the store is still busy (a re-entrant call made during
    verification, login or logout) gets the loading page instead.
    """

    @wraps(view)
    def wrapped(*args, **kwargs):
        store = get_store()
        store.verify_session()
        if store.is_loading:
            return _loading_response()
        if not store.is_authenticated:
            return login_manager.unauthorized()
        return view(*args, **kwargs)

    return wrapped


def organizer_required(action: str):
    """Only organizers may reach the view; others are sent back to the event list."""

    def decorator(view):
        @wraps(view)
        @auth_required
        def wrapped(*args, **kwargs):
            if not get_store().current_user.is_organizer:
                flash(f"Only organizers can {action}.", "error")
                return redirect(url_for("events.list_events"))
            return view(*args, **kwargs)

        return wrapped

    return decorator
