import logging
from typing import Optional, Tuple

from flask import Blueprint, abort, flash, redirect, render_template, request, url_for
from werkzeug.wrappers import Response

from ..forms import EventForm, TitleForm
from ..models import Event
from ..portal import auth_required, get_events, get_store, organizer_required
from ..services.event_service import ALL_CATEGORIES, categories, filter_events
from ..services.http_client import ApiError
from ..services.logging_service import log_event


events_bp = Blueprint("events", __name__, url_prefix="/events")

logger = logging.getLogger(__name__)


def _load_event(event_id: int) -> Tuple[Optional[Event], Optional[Response]]:
    """Fetch an event for a page; a missing event or a failed call becomes a response."""
    try:
        event = get_events().get_event(event_id)
    except ApiError as e:
        logger.warning("Error fetching event %s: %s", event_id, e.message)
        flash("Failed to load event details.", "error")
        return None, redirect(url_for("events.list_events"))

    if event is None:
        abort(404, description="Event not found.")
    return event, None


def _load_owned_event(event_id: int) -> Tuple[Optional[Event], Optional[Response]]:
    event, response = _load_event(event_id)
    if response is not None:
        return None, response

    if not event.is_owned_by(get_store().current_user):
        flash("You can only manage events you organize.", "error")
        return None, redirect(url_for("events.event_detail", event_id=event_id))
    return event, None


@events_bp.get("/")
def list_events():
    selected_category = request.args.get("category") or ALL_CATEGORIES
    search = (request.args.get("q") or "").strip()

    try:
        all_events = get_events().list_events()
        error = None
    except ApiError as e:
        all_events, error = [], e.message

    return render_template(
        "events/list.html",
        events=filter_events(all_events, selected_category, search),
        categories=categories(all_events),
        selected_category=selected_category,
        search=search,
        error=error,
    )


@events_bp.get("/<int:event_id>")
def event_detail(event_id: int):
    event, response = _load_event(event_id)
    if response is not None:
        return response

    store = get_store()
    store.verify_session()
    user = store.current_user

    is_registered = False
    is_organizer = event.is_owned_by(user)
    registrations = []
    registrations_error = None

    if store.is_authenticated:
        is_registered = get_events().check_registration_status(event_id)
        if is_organizer:
            try:
                registrations = get_events().list_registrations_for_event(event_id)
            except ApiError as e:
                registrations_error = e.message

    return render_template(
        "events/detail.html",
        event=event,
        is_registered=is_registered,
        is_organizer=is_organizer,
        registrations=registrations,
        registrations_error=registrations_error,
        title_form=TitleForm(data={"title": event.title}) if is_organizer else None,
    )


@events_bp.post("/<int:event_id>/register")
@auth_required
def register_for_event(event_id: int):
    user = get_store().current_user
    try:
        message = get_events().register_for_event(event_id)
    except ApiError as e:
        flash(f"Registration failed: {e.message}", "error")
        return redirect(url_for("events.event_detail", event_id=event_id))

    log_event("registration_created", user_id=user.user_id, meta={"event_id": event_id})
    flash(message, "success")
    return redirect(url_for("events.event_detail", event_id=event_id))


@events_bp.post("/<int:event_id>/deregister")
@auth_required
def deregister_from_event(event_id: int):
    user = get_store().current_user
    try:
        message = get_events().deregister_from_event(event_id)
    except ApiError as e:
        flash(f"Cancellation failed: {e.message}", "error")
        return redirect(url_for("events.event_detail", event_id=event_id))

    log_event("registration_cancelled", user_id=user.user_id, meta={"event_id": event_id})
    flash(message, "success")
    return redirect(url_for("events.event_detail", event_id=event_id))


@events_bp.get("/new")
@organizer_required("create events")
def new_event():
    return render_template("events/form.html", form=EventForm(), event=None)


@events_bp.post("/new")
@organizer_required("create events")
def new_event_post():
    form = EventForm()
    if not form.validate_on_submit():
        return render_template("events/form.html", form=form, event=None), 400

    try:
        event = get_events().create_event(form.to_draft())
    except ApiError as e:
        flash(e.message, "error")
        return render_template("events/form.html", form=form, event=None), 400

    log_event("event_created", user_id=get_store().current_user.user_id, meta={"event_id": event.event_id, "title": event.title})
    flash("Your event has been created successfully!", "success")
    return redirect(url_for("events.event_detail", event_id=event.event_id))


@events_bp.get("/<int:event_id>/edit")
@organizer_required("edit events")
def edit_event(event_id: int):
    event, response = _load_owned_event(event_id)
    if response is not None:
        return response

    form = EventForm(editing=True)
    form.allow_category(event.category)
    form.fill_from(event)
    return render_template("events/form.html", form=form, event=event)


@events_bp.post("/<int:event_id>/edit")
@organizer_required("edit events")
def edit_event_post(event_id: int):
    event, response = _load_owned_event(event_id)
    if response is not None:
        return response

    form = EventForm(editing=True)
    form.allow_category(event.category)
    if not form.validate_on_submit():
        return render_template("events/form.html", form=form, event=event), 400

    try:
        updated = get_events().update_event(event_id, form.to_draft())
    except ApiError as e:
        flash(e.message, "error")
        return render_template("events/form.html", form=form, event=event), 400

    log_event("event_updated", user_id=get_store().current_user.user_id, meta={"event_id": event_id, "title": updated.title})
    flash("Event updated.", "success")
    return redirect(url_for("events.event_detail", event_id=event_id))


@events_bp.post("/<int:event_id>/title")
@organizer_required("edit events")
def update_title(event_id: int):
    _, response = _load_owned_event(event_id)
    if response is not None:
        return response

    form = TitleForm()
    if not form.validate_on_submit():
        for error in form.title.errors:
            flash(error, "error")
        return redirect(url_for("events.event_detail", event_id=event_id))

    try:
        get_events().update_event_title(event_id, form.title.data.strip())
    except ApiError as e:
        flash(e.message, "error")
        return redirect(url_for("events.event_detail", event_id=event_id))

    log_event("event_updated", user_id=get_store().current_user.user_id, meta={"event_id": event_id, "field": "title"})
    flash("Title updated.", "success")
    return redirect(url_for("events.event_detail", event_id=event_id))


@events_bp.post("/<int:event_id>/delete")
@organizer_required("delete events")
def delete_event(event_id: int):
    _, response = _load_owned_event(event_id)
    if response is not None:
        return response

    try:
        message = get_events().delete_event(event_id)
    except ApiError as e:
        flash(f"Deletion failed: {e.message}", "error")
        return redirect(url_for("events.event_detail", event_id=event_id))

    log_event("event_deleted", user_id=get_store().current_user.user_id, meta={"event_id": event_id})
    flash(message, "success")
    return redirect(url_for("profile.index"))


@events_bp.get("/<int:event_id>/registrations")
@organizer_required("view registrations")
def event_registrations(event_id: int):
    event, response = _load_owned_event(event_id)
    if response is not None:
        return response

    try:
        registrations = get_events().list_registrations_for_event(event_id)
        error = None
    except ApiError as e:
        registrations, error = [], e.message

    return render_template("events/registrations.html", event=event, registrations=registrations, error=error)
