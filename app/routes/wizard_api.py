"""
Server-side import wizard sessions.

Each session holds one wizard state. A session only accepts the action of its
current step; the other actions answer 409. A step that fails answers 422 with
the unchanged state so the client can show the error and retry.
"""
import uuid

from flask import Blueprint, current_app, jsonify

from ..errors import ConflictError, NotFoundError
from ..extensions import storage, workflow_client
from ..identity import current_user_id
from ..services.relay import request_body
from ..storage.json_store import utcnow_iso
from ..wizard import machine
from ..wizard.state import initial_state
from ..wizard.steps import StepFailed, WizardSteps

bp = Blueprint("wizard_api", __name__)

SESSIONS_COLLECTION = "wizard_sessions"


def _load(session_id: str, user_id: str) -> dict:
    row = storage.store.get(SESSIONS_COLLECTION, session_id)
    if not row or row.get("userId") != user_id:
        raise NotFoundError("Wizard session not found")
    return row["state"]


def _save(session_id: str, user_id: str, state: dict):
    storage.store.upsert(SESSIONS_COLLECTION, session_id, {
        "id": session_id, "userId": user_id, "state": state, "updated_at": utcnow_iso(),
    })


def _advance(session_id: str, action):
    """Load the session, apply ``action(steps, state)`` and persist what it returns."""
    body = request_body()
    user_id = current_user_id(body)
    state = _load(session_id, user_id)
    steps = WizardSteps(workflow_client, user_id)
    try:
        new_state = action(steps, state, body)
    except StepFailed as e:
        current_app.logger.warning("Wizard %s step %s failed: %s", session_id, state["currentStep"], e.message)
        return jsonify({"error": e.message, "state": e.state or state}), 422
    except machine.TransitionError as e:
        raise ConflictError(str(e))

    _save(session_id, user_id, new_state)
    if new_state.get("error"):
        return jsonify({"error": new_state["error"], "state": new_state}), 422
    return jsonify({"state": new_state})


@bp.post("/wizard")
def create_session():
    user_id = current_user_id(request_body())
    session_id = uuid.uuid4().hex
    state = initial_state(session_id)
    _save(session_id, user_id, state)
    current_app.logger.info("Started wizard session %s for %s", session_id, user_id)
    return jsonify({"state": state}), 201


@bp.get("/wizard/<session_id>")
def get_session(session_id):
    return jsonify({"state": _load(session_id, current_user_id())})


@bp.delete("/wizard/<session_id>")
def delete_session(session_id):
    _load(session_id, current_user_id())
    storage.store.delete(SESSIONS_COLLECTION, session_id)
    current_app.logger.info("Deleted wizard session %s", session_id)
    return jsonify({"success": True})


@bp.post("/wizard/<session_id>/folder")
def submit_folder(session_id):
    return _advance(session_id, lambda steps, state, body: steps.submit_folder(state, body.get("folderUrl")))


@bp.post("/wizard/<session_id>/token")
def submit_token(session_id):
    return _advance(session_id, lambda steps, state, body: steps.submit_token(
        state, body.get("apiToken"), body.get("name")))


@bp.post("/wizard/<session_id>/shop")
def choose_shop(session_id):
    return _advance(session_id, lambda steps, state, body: steps.choose_shop(state, body.get("shopId")))


@bp.post("/wizard/<session_id>/files/list")
def list_files(session_id):
    return _advance(session_id, lambda steps, state, body: steps.list_files(state))


@bp.post("/wizard/<session_id>/files")
def confirm_files(session_id):
    return _advance(session_id, lambda steps, state, body: steps.confirm_files(state, body.get("files")))


@bp.post("/wizard/<session_id>/import")
def run_import(session_id):
    return _advance(session_id, lambda steps, state, body: steps.run_import(
        state, push_to_shopify=bool(body.get("pushToShopify"))))


@bp.post("/wizard/<session_id>/back")
def go_back(session_id):
    return _advance(session_id, lambda steps, state, body: machine.back(state))


@bp.post("/wizard/<session_id>/restart")
def restart(session_id):
    return _advance(session_id, lambda steps, state, body: machine.restart(state))
