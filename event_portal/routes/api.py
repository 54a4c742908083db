from __future__ import annotations

from flask import Blueprint, jsonify

from ..portal import get_events, get_store
from ..security import csrf


api_bp = Blueprint("api", __name__, url_prefix="/portal")
csrf.exempt(api_bp)


def _unauthorized(msg: str = "Not authenticated"):
    return jsonify({"error": "unauthorized", "message": msg}), 401


@api_bp.get("/session")
def session_state():
    store = get_store()
    store.verify_session()
    return jsonify(store.snapshot()), 200


@api_bp.get("/events/<int:event_id>/status")
def registration_status(event_id: int):
    store = get_store()
    store.verify_session()
    if not store.is_authenticated:
        return _unauthorized()

    return jsonify({
        "eventId": event_id,
        "isRegistered": get_events().check_registration_status(event_id),
    }), 200
