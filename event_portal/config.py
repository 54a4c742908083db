import os

DEFAULT_API_BASE_URL = "http://localhost:8080"


class Config:
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-change-me")

    @staticmethod
    def _build_api_base_url() -> str:
        # Both "http://host:8080" and "http://host:8080/api" are accepted;
        # the client strips the "/api" suffix itself.
        base = os.environ.get("EVENTS_API_BASE_URL") or os.environ.get("VITE_API_BASE_URL")
        return (base or DEFAULT_API_BASE_URL).strip()

    API_BASE_URL = _build_api_base_url.__func__()
    API_TIMEOUT = float(os.environ.get("API_TIMEOUT", "15"))

    # Parallel backend calls made by a single page (profile dashboard)
    API_MAX_WORKERS = int(os.environ.get("API_MAX_WORKERS", "4"))

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
