# event_portal/services/http_client.py
"""Thin wrapper over ``requests`` for talking to the events backend.

Every call is attempted exactly once. Outcomes are normalised into an
``ApiResult`` so callers never have to guess the shape of a failure:

* no response at all            -> ``ErrorKind.TRANSPORT``
* non-2xx with ``{"message"}``  -> ``ErrorKind.HTTP`` (message kept verbatim)
* non-2xx without a message     -> ``ErrorKind.HTTP_UNSTRUCTURED``
* 404 on an optional resource   -> ``Ok(None)``
* 2xx with an unreadable body   -> ``ErrorKind.MALFORMED_BODY``
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

import requests

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


class ErrorKind(Enum):
    TRANSPORT = "transport"
    HTTP = "http"
    HTTP_UNSTRUCTURED = "http_unstructured"
    NOT_FOUND = "not_found"
    MALFORMED_BODY = "malformed_body"


class ApiError(Exception):
    """A failed backend call. ``message`` is safe to show to the user."""

    def __init__(self, kind: ErrorKind, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status

    @property
    def is_unauthorized(self) -> bool:
        return self.status in (401, 403)

    def __repr__(self) -> str:
        return f"ApiError({self.kind.value}, {self.message!r}, status={self.status})"


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[ApiError] = None

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def map(self, fn: Callable[[T], U]) -> "ApiResult[U]":
        if self.error is not None:
            return ApiResult(error=self.error)
        try:
            return ApiResult(value=fn(self.value))  # type: ignore[arg-type]
        except (TypeError, ValueError, KeyError) as e:
            return Err(ApiError(ErrorKind.MALFORMED_BODY, f"Unexpected response from server: {e}"))


def Ok(value: Any = None) -> ApiResult:
    return ApiResult(value=value)


def Err(error: ApiError) -> ApiResult:
    return ApiResult(error=error)


def normalize_base_url(base_url: str) -> str:
    base = (base_url or "").strip().rstrip("/")
    if base.endswith("/api"):
        base = base[: -len("/api")]
    return base


class RequestCache:
    """Memoises GET results for the lifetime of one portal request.

    Identical GETs issued concurrently share a single in-flight call. Any
    mutating call clears the cache so later reads see the server's state.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, Future] = {}

    def get_or_fetch(self, key: str, fetch: Callable[[], ApiResult]) -> ApiResult:
        with self._lock:
            pending = self._entries.get(key)
            owner = pending is None
            if owner:
                pending = Future()
                self._entries[key] = pending

        if not owner:
            return pending.result()

        try:
            result = fetch()
        except BaseException as e:
            with self._lock:
                self._entries.pop(key, None)
            pending.set_exception(e)
            raise

        # Failures are not memoised
        if not result.is_ok:
            with self._lock:
                self._entries.pop(key, None)
        pending.set_result(result)
        return result

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class ApiClient:
    def __init__(
        self,
        base_url: str,
        cookies: Optional[Dict[str, str]] = None,
        timeout: float = 15,
        session: Optional[requests.Session] = None,
        cache: Optional[RequestCache] = None,
    ):
        self.base_url = normalize_base_url(base_url)
        self.timeout = timeout
        self.cache = cache
        self.http = session or requests.Session()
        if cookies:
            self.http.cookies.update(cookies)

    def url_for(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        if not path.startswith("/api/"):
            path = "/api" + path
        return self.base_url + path

    # Backend cookies are opaque to the portal; they are only carried.
    def export_cookies(self) -> Dict[str, str]:
        return requests.utils.dict_from_cookiejar(self.http.cookies)

    def clear_cookies(self) -> None:
        self.http.cookies.clear()

    def has_cookies(self) -> bool:
        return len(self.http.cookies) > 0

    def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        absent_on_404: bool = False,
    ) -> ApiResult:
        method = method.upper()
        if method == "GET" and self.cache is not None:
            key = f"{path}|404" if absent_on_404 else path
            return self.cache.get_or_fetch(key, lambda: self._send(method, path, json, absent_on_404))

        result = self._send(method, path, json, absent_on_404)
        if method != "GET" and self.cache is not None:
            self.cache.clear()
        return result

    def get(self, path: str, absent_on_404: bool = False) -> ApiResult:
        return self.request("GET", path, absent_on_404=absent_on_404)

    def post(self, path: str, json: Any = None) -> ApiResult:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Any = None) -> ApiResult:
        return self.request("PUT", path, json=json)

    def delete(self, path: str) -> ApiResult:
        return self.request("DELETE", path)

    def _send(self, method: str, path: str, json: Any, absent_on_404: bool) -> ApiResult:
        url = self.url_for(path)
        headers = {"Accept": "application/json"}
        if json is not None:
            headers["Content-Type"] = "application/json"

        try:
            r = self.http.request(method, url, json=json, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("%s %s failed: %r", method, url, e)
            return Err(ApiError(ErrorKind.TRANSPORT, f"Network error: could not reach the events service ({e.__class__.__name__})"))

        if r.status_code == 404 and absent_on_404:
            return Ok(None)

        if not r.ok:
            error = _error_from_response(r)
            logger.info("%s %s -> %s %s", method, url, r.status_code, error.message)
            return Err(error)

        if not r.content:
            return Ok(None)

        content_type = r.headers.get("Content-Type", "")
        if "json" not in content_type:
            return Ok(None)

        try:
            return Ok(r.json())
        except ValueError:
            return Err(ApiError(ErrorKind.MALFORMED_BODY, "Unexpected response from server.", r.status_code))


def _error_from_response(r: requests.Response) -> ApiError:
    generic = f"HTTP error! status: {r.status_code}"
    kind_for_absent = ErrorKind.NOT_FOUND if r.status_code == 404 else ErrorKind.HTTP_UNSTRUCTURED

    try:
        body = r.json()
    except ValueError:
        return ApiError(kind_for_absent, generic, r.status_code)

    message = body.get("message") if isinstance(body, dict) else None
    if isinstance(message, str) and message.strip():
        return ApiError(ErrorKind.NOT_FOUND if r.status_code == 404 else ErrorKind.HTTP, message, r.status_code)
    return ApiError(kind_for_absent, generic, r.status_code)
