# event_portal/services/logging_service.py
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from google.cloud import firestore

logger = logging.getLogger(__name__)

AUDIT_SOURCE = "event-portal"

_client: Optional[firestore.Client] = None


def _get_client() -> firestore.Client:
    global _client
    if _client is None:
        kwargs = {}
        project = os.environ.get("GOOGLE_CLOUD_PROJECT") or os.environ.get("GCP_PROJECT")
        if project:
            kwargs["project"] = project
        database = os.environ.get("FIRESTORE_DB")  # e.g. "event-portal-fs"
        if database:
            kwargs["database"] = database
        _client = firestore.Client(**kwargs)

    return _client


def audit_enabled() -> bool:
    if os.environ.get("TESTING") == "1":
        return False
    return os.environ.get("DISABLE_FIRESTORE_LOGS") != "1"


def audit_collection() -> str:
    return os.environ.get("AUDIT_COLLECTION", "portal_audit")


def log_event(action: str, user_id: Optional[int] = None, meta: Optional[Dict[str, Any]] = None) -> None:
    """Record a portal action in the audit trail. Failures are logged, never raised."""
    meta = meta or {}
    logger.info("audit action=%s user_id=%s meta=%s", action, user_id, meta)

    if not audit_enabled():
        return

    try:
        _get_client().collection(audit_collection()).add({
            "action": action,
            "user_id": user_id,
            "meta": meta,
            "source": AUDIT_SOURCE,
            "created_at": datetime.now(timezone.utc).isoformat(),
        })
    except Exception as e:
        logger.warning("Firestore audit write failed for %s: %r", action, e)
