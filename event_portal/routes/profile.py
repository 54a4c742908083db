import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from flask import Blueprint, current_app, flash, redirect, render_template, url_for

from ..portal import auth_required, get_events, get_store
from ..services.http_client import ApiError
from ..services.logging_service import log_event


profile_bp = Blueprint("profile", __name__, url_prefix="/profile")

logger = logging.getLogger(__name__)


@dataclass
class Section:
    """One independently loaded part of a page."""

    items: List[Any] = field(default_factory=list)
    error: Optional[str] = None
    loaded: bool = False


def load_sections(loaders: Dict[str, Callable[[], List[Any]]], max_workers: int = 4) -> Dict[str, Section]:
    """Run the loaders concurrently. A failing loader only marks its own section."""
    sections = {name: Section() for name in loaders}
    if not loaders:
        return sections

    with ThreadPoolExecutor(max_workers=min(max_workers, len(loaders))) as pool:
        futures = {name: pool.submit(fn) for name, fn in loaders.items()}

        for name, future in futures.items():
            try:
                sections[name].items = future.result() or []
                sections[name].loaded = True
            except ApiError as e:
                logger.warning("Profile section %s failed: %s", name, e.message)
                sections[name].error = e.message

    return sections


@profile_bp.get("/")
@auth_required
def index():
    user = get_store().current_user
    service = get_events()

    loaders = {"registrations": service.list_my_registrations}
    if user.is_organizer:
        loaders["organized"] = service.list_my_organized_events

    sections = load_sections(loaders, max_workers=current_app.config["API_MAX_WORKERS"])

    return render_template(
        "profile/index.html",
        user=user,
        registrations=sections["registrations"],
        organized=sections.get("organized"),
    )


@profile_bp.post("/registrations/<int:event_id>/cancel")
@auth_required
def cancel_registration(event_id: int):
    user = get_store().current_user
    try:
        get_events().deregister_from_event(event_id)
    except ApiError as e:
        flash(f"Cancellation failed: {e.message}", "error")
        return redirect(url_for("profile.index"))

    log_event("registration_cancelled", user_id=user.user_id, meta={"event_id": event_id, "source": "profile"})
    flash("Your event registration has been successfully cancelled.", "success")
    return redirect(url_for("profile.index"))
