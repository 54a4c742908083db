# event_portal/services/session_store.py
"""Current-user state for one browser.

The backend's cookie is the only authority on who is logged in. The store
asks the backend, keeps the answer for the current page and mirrors a copy
into the browser session as a cache hint. ``SessionStore`` is the only code
that writes either of them.

States::

    unauthenticated -> verifying -> authenticated | unauthenticated
    unauthenticated -> logging_in -> authenticated | unauthenticated
    unauthenticated -> registering -> unauthenticated
    authenticated   -> logging_out -> unauthenticated
"""
from __future__ import annotations

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..models import UserSession
from .http_client import ApiClient, ApiError, ErrorKind

logger = logging.getLogger(__name__)

USER_INFO_KEY = "userInfo"
API_COOKIES_KEY = "apiCookies"

LOGIN_FALLBACK = "Invalid credentials"
LOGIN_TRANSPORT_ERROR = "An error occurred during login. Please try again."
REGISTER_SUCCESS_FALLBACK = "Please log in."
REGISTER_FALLBACK = "Could not register user."
REGISTER_TRANSPORT_ERROR = "An error occurred during registration. Please try again."


class AuthState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    VERIFYING = "verifying"
    AUTHENTICATED = "authenticated"
    LOGGING_IN = "logging_in"
    REGISTERING = "registering"
    LOGGING_OUT = "logging_out"


BUSY_STATES = frozenset({AuthState.VERIFYING, AuthState.LOGGING_IN, AuthState.REGISTERING, AuthState.LOGGING_OUT})


@dataclass(frozen=True)
class AuthOutcome:
    ok: bool
    message: str = ""


class BrowserStorage:
    """The browser-side mirror of the session (a best-effort cache)."""

    def __init__(self, backing: MutableMapping):
        self._backing = backing

    def load_user(self) -> Optional[UserSession]:
        raw = self._backing.get(USER_INFO_KEY)
        if not raw:
            return None
        try:
            return UserSession.from_dict(raw)
        except (TypeError, ValueError):
            self._backing.pop(USER_INFO_KEY, None)
            return None

    def save_user(self, user: UserSession) -> None:
        self._backing[USER_INFO_KEY] = user.to_dict()

    def clear_user(self) -> None:
        self._backing.pop(USER_INFO_KEY, None)

    def load_cookies(self) -> Dict[str, str]:
        return dict(self._backing.get(API_COOKIES_KEY) or {})

    def save_cookies(self, cookies: Dict[str, str]) -> None:
        if cookies:
            self._backing[API_COOKIES_KEY] = dict(cookies)
        else:
            self._backing.pop(API_COOKIES_KEY, None)

    def clear(self) -> None:
        self.clear_user()
        self._backing.pop(API_COOKIES_KEY, None)


class SessionStore:
    def __init__(self, client: ApiClient, storage: BrowserStorage):
        self.client = client
        self.storage = storage
        self.state = AuthState.UNAUTHENTICATED
        self._user: Optional[UserSession] = None
        self._generation = 0
        self._verified = False

    @property
    def current_user(self) -> Optional[UserSession]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None and self.state == AuthState.AUTHENTICATED

    @property
    def is_loading(self) -> bool:
        return self.state in BUSY_STATES

    @property
    def cached_user(self) -> Optional[UserSession]:
        """Last known user from the browser mirror. Never used for access decisions."""
        return self.storage.load_user()

    def _begin(self, state: AuthState) -> int:
        self._generation += 1
        self.state = state
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _set_user(self, user: UserSession) -> None:
        self._user = user
        self.state = AuthState.AUTHENTICATED
        self.storage.save_user(user)
        self.storage.save_cookies(self.client.export_cookies())

    def _drop_user(self) -> None:
        self._user = None
        self.state = AuthState.UNAUTHENTICATED
        self.storage.clear_user()

    def verify_session(self) -> bool:
        """Ask the backend who is logged in. Runs once per page load."""
        if self._verified:
            return self.is_authenticated
        self._verified = True

        if not self.client.has_cookies():
            # Nothing to send, so the backend could only answer 401
            self._drop_user()
            return False

        generation = self._begin(AuthState.VERIFYING)
        result = self.client.get("/api/users/me").map(UserSession.from_api)

        if not self._is_current(generation):
            logger.debug("Discarding stale session verification result")
            return self.is_authenticated

        if result.is_ok:
            self._set_user(result.value)
        else:
            logger.info("Session verification failed or no active session: %s", result.error.message)
            self._drop_user()
            if result.error.is_unauthorized:
                self.storage.save_cookies({})
        return self.is_authenticated

    def login(self, identifier: str, password: str) -> AuthOutcome:
        previous_user, previous_state = self._user, self.state
        generation = self._begin(AuthState.LOGGING_IN)

        result = self.client.post(
            "/api/auth/login",
            json={"usernameOrEmail": identifier, "password": password},
        ).map(UserSession.from_api)

        if not self._is_current(generation):
            return AuthOutcome(False, LOGIN_TRANSPORT_ERROR)

        if not result.is_ok:
            logger.info("Login failed: %s", result.error.message)
            self._user, self.state = previous_user, previous_state
            return AuthOutcome(False, _login_failure_message(result.error))

        self._verified = True
        self._set_user(result.value)
        return AuthOutcome(True, f"Welcome back, {result.value.display_name}!")

    def register(self, fields: Dict[str, Any]) -> AuthOutcome:
        """Create an account. Does not log the user in."""
        previous_state = self.state
        generation = self._begin(AuthState.REGISTERING)

        payload = {
            "username": fields.get("username", ""),
            "firstName": fields.get("first_name", fields.get("firstName", "")),
            "lastName": fields.get("last_name", fields.get("lastName", "")),
            "email": fields.get("email", ""),
            "password": fields.get("password", ""),
        }
        result = self.client.post("/api/auth/register", json=payload)

        if self._is_current(generation):
            self.state = previous_state

        if result.is_ok:
            message = result.value.get("message") if isinstance(result.value, dict) else None
            return AuthOutcome(True, message or REGISTER_SUCCESS_FALLBACK)

        error = result.error
        logger.info("Registration failed: %s", error.message)
        if error.kind == ErrorKind.TRANSPORT:
            return AuthOutcome(False, REGISTER_TRANSPORT_ERROR)
        if error.kind == ErrorKind.HTTP:
            return AuthOutcome(False, error.message)
        return AuthOutcome(False, REGISTER_FALLBACK)

    def logout(self) -> AuthOutcome:
        """Invalidate the backend session, then forget the user no matter what."""
        self._begin(AuthState.LOGGING_OUT)
        try:
            result = self.client.post("/api/auth/logout")
        finally:
            self._user = None
            self.state = AuthState.UNAUTHENTICATED
            self._verified = True
            self.client.clear_cookies()
            self.storage.clear()

        if result.is_ok:
            return AuthOutcome(True, "You have been logged out successfully")
        logger.warning("Logout call failed: %s", result.error.message)
        return AuthOutcome(False, result.error.message)

    def persist_cookies(self) -> None:
        # The backend may rotate its cookie on any call
        if self.is_authenticated:
            self.storage.save_cookies(self.client.export_cookies())

    def snapshot(self) -> Dict[str, Any]:
        user = self._user
        return {
            "state": self.state.value,
            "isAuthenticated": self.is_authenticated,
            "isLoading": self.is_loading,
            "user": None if user is None else {**user.to_dict(), "role": user.role},
        }


def _login_failure_message(error: ApiError) -> str:
    if error.kind == ErrorKind.TRANSPORT:
        return LOGIN_TRANSPORT_ERROR
    if error.kind == ErrorKind.HTTP:
        return error.message
    return LOGIN_FALLBACK
