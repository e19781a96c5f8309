from flask import Blueprint, current_app, jsonify

from ..errors import NotFoundError
from ..extensions import storage
from ..identity import current_user_id
from ..services.relay import request_body
from ..storage.json_store import utcnow_iso
from ..storage.repositories import (
    ASSETS_COLLECTION, IMPORT_EVENTS_COLLECTION, IMPORTS_COLLECTION, USER_SETTINGS_COLLECTION, USERS_COLLECTION,
)

bp = Blueprint("user_api", __name__)

PROFILE_FIELDS = ("display_name", "email", "avatar_url")
SETTINGS_FIELDS = ("locale", "timezone", "default_shop_id", "default_preset_id")
RECENT_ACTIVITY_LIMIT = 10


@bp.get("/user/profile")
def get_profile():
    user_id = current_user_id()
    user = storage.store.find_one(USERS_COLLECTION, user_id=user_id)
    if not user:
        current_app.logger.warning("User not found: %s", user_id)
        raise NotFoundError("User not found")
    profile = dict(user)
    profile["user_settings"] = storage.store.find(USER_SETTINGS_COLLECTION, user_id=user_id)
    return jsonify(profile)


@bp.put("/user/profile")
def update_profile():
    body = request_body()
    user_id = current_user_id(body)
    patch = {k: body[k] for k in PROFILE_FIELDS if k in body}
    patch["updated_at"] = utcnow_iso()
    rows = storage.store.update(USERS_COLLECTION, patch, user_id=user_id)
    if not rows:
        raise NotFoundError("User not found")
    current_app.logger.info("Updated profile for %s", user_id)
    return jsonify(rows[0])


@bp.put("/user/settings")
def update_settings():
    """Insert or replace the caller's settings row (one per user)."""
    body = request_body()
    user_id = current_user_id(body)
    settings = {"user_id": user_id, **{k: body[k] for k in SETTINGS_FIELDS if k in body}, "updated_at": utcnow_iso()}
    with storage.store.transaction():
        existing = storage.store.get(USER_SETTINGS_COLLECTION, user_id)
        if existing:
            settings = {**existing, **settings}
        else:
            settings.setdefault("id", user_id)
        storage.store.upsert(USER_SETTINGS_COLLECTION, user_id, settings)
    current_app.logger.info("Updated settings for %s", user_id)
    return jsonify(settings)


@bp.get("/user/stats")
def get_stats():
    user_id = current_user_id()
    imports = storage.store.find(IMPORTS_COLLECTION, user_id=user_id)
    import_ids = {imp.get("id") for imp in imports}
    designs = storage.store.find(ASSETS_COLLECTION, user_id=user_id)

    events = []
    if import_ids:
        events = [e for e in storage.store.find(IMPORT_EVENTS_COLLECTION, order_by="created_at", descending=True)
                  if e.get("import_id") in import_ids][:RECENT_ACTIVITY_LIMIT]

    stats = {
        "totalImports": len(imports),
        "successfulImports": sum(1 for imp in imports if imp.get("status") == "completed"),
        "designsUploaded": len(designs),
        "recentActivity": [
            {
                "id": e.get("id"),
                "importId": e.get("import_id"),
                "eventType": e.get("event_type"),
                "message": e.get("message"),
                "severity": e.get("severity"),
                "createdAt": e.get("created_at"),
            }
            for e in events
        ],
    }
    current_app.logger.info("Stats for %s: %d import(s), %d event(s)", user_id, len(imports), len(events))
    return jsonify(stats)
