from flask import Blueprint, current_app, jsonify, request

from ..errors import require_fields
from ..extensions import storage, workflow_client
from ..identity import current_user_id
from ..services.relay import request_body

bp = Blueprint("tokens_api", __name__)


def _to_bool(param):
    if isinstance(param, bool):
        return param
    if isinstance(param, (int, float)):
        return param != 0
    if isinstance(param, str):
        return param.strip().lower() in ("1", "true", "yes", "y", "on")
    return False


def _token_view(t: dict) -> dict:
    return {k: t.get(k) for k in ("id", "provider", "token_ref", "name", "is_default", "created_at", "last_used_at")}


@bp.get("/user/tokens")
def list_tokens():
    user_id = current_user_id()
    provider = request.args.get("provider")
    tokens = storage.tokens.list(user_id, provider)
    current_app.logger.info("Found %d token(s) for %s%s", len(tokens), user_id,
                            f" ({provider})" if provider else "")
    return jsonify([_token_view(t) for t in tokens])


@bp.post("/user/tokens")
@bp.post("/user/tokens/save")
def save_token():
    body = request_body()
    require_fields(body, "userId", "provider", "tokenRef")
    existing = storage.tokens.list(body["userId"], body["provider"])
    name = (body.get("name") or "").strip() or f"{body['provider'].capitalize()} Token {len(existing) + 1}"
    token = storage.tokens.create(
        body["userId"], body["provider"], body["tokenRef"], name=name,
        is_default=_to_bool(body.get("is_default", body.get("isDefault", False))),
    )
    current_app.logger.info("Saved %s token %s (default=%s)", token["provider"], token["id"], token["is_default"])
    return jsonify(_token_view(token)), 201


@bp.patch("/user/tokens")
@bp.post("/user/tokens/update")
def update_token():
    body = request_body()
    require_fields(body, "tokenId", "userId")
    is_default = body.get("is_default", body.get("isDefault"))
    token = storage.tokens.update(
        body["userId"], body["tokenId"],
        name=body.get("name"),
        token_ref=body.get("token_ref") or body.get("tokenRef"),
        is_default=None if is_default is None else _to_bool(is_default),
    )
    current_app.logger.info("Updated token %s", token["id"])
    return jsonify({"success": True, "token": _token_view(token)})


@bp.delete("/user/tokens")
@bp.delete("/user/tokens/<token_id>")
@bp.post("/user/tokens/delete")
def delete_token(token_id=None):
    params = {**request.args.to_dict(), **request_body()}
    if token_id:
        params["tokenId"] = token_id
    require_fields(params, "tokenId", "userId")
    storage.tokens.delete(params["userId"], params["tokenId"])
    current_app.logger.info("Deleted token %s for %s", params["tokenId"], params["userId"])
    return jsonify({"success": True})


@bp.post("/user/tokens/log")
def log_token_usage():
    """Stamp ``last_used_at`` and tell the workflow engine which token an import used."""
    body = request_body()
    require_fields(body, "apiTokenId", "userId", "importId")
    storage.tokens.touch(body["userId"], body["apiTokenId"])
    data = workflow_client.call("log_token_usage", {
        "apiTokenId": body["apiTokenId"], "userId": body["userId"], "importId": body["importId"],
    })
    return jsonify({"success": True, **data})
