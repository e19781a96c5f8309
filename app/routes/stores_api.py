from flask import Blueprint, current_app, jsonify, request

from ..errors import ApiError, ValidationError, require_fields
from ..extensions import storage, workflow_client
from ..identity import current_user_id
from ..services.relay import request_body
from .tokens_api import _to_bool

bp = Blueprint("stores_api", __name__)


def _store_view(s: dict) -> dict:
    return {k: s.get(k) for k in ("id", "name", "provider", "shop_id", "api_token", "is_default", "created_at")}


@bp.get("/user/stores")
def list_stores():
    user_id = current_user_id(required=True)
    stores = storage.stores.list(user_id, request.args.get("provider"))
    current_app.logger.info("Found %d store(s) for %s", len(stores), user_id)
    return jsonify([_store_view(s) for s in stores])


@bp.post("/user/stores")
@bp.post("/user/stores/save")
def save_store():
    """Save a shop; the first shop of a provider becomes its default whatever was asked."""
    body = request_body()
    require_fields(body, "userId", "provider", "name", "store_id", "api_token_id")
    store = storage.stores.create(
        body["userId"], body["provider"], body["name"],
        shop_id=body["store_id"], api_token=body["api_token_id"],
        is_default=_to_bool(body.get("is_default", False)),
    )
    current_app.logger.info("Saved store %s (%s, default=%s)", store["id"], store["provider"], store["is_default"])
    return jsonify({"success": True, "store": _store_view(store)})


@bp.patch("/user/stores")
@bp.put("/user/stores")
def update_store():
    body = request_body()
    require_fields(body, "storeId", "userId")
    is_default = body.get("is_default")
    store = storage.stores.update(
        body["userId"], body["storeId"],
        name=body.get("name"),
        is_default=None if is_default is None else _to_bool(is_default),
    )
    current_app.logger.info("Updated store %s", store["id"])
    return jsonify({"success": True, "store": _store_view(store)})


@bp.delete("/user/stores")
def delete_store():
    params = {**request.args.to_dict(), **request_body()}
    require_fields(params, "storeId", "userId")
    deleted = storage.stores.delete(params["userId"], params["storeId"])
    current_app.logger.info("Deleted store %s (was default: %s)", deleted["id"], deleted.get("is_default"))
    return jsonify({"success": True})


@bp.post("/user/stores/connect")
@bp.post("/connect-shop")
def connect_shop():
    """
    Validate a provider token, keep it as an ApiToken and list the shops it can reach.

    Returns ``{apiTokenId, tokenRef, shops}``. The token record obeys the
    one-default-per-provider rule like any other token save.
    """
    body = request_body()
    require_fields(body, "provider", "apiToken", "userId")
    provider, api_token, user_id = body["provider"], body["apiToken"], body["userId"]

    if provider == "shopify":
        raise ApiError("Shopify provider not yet implemented", status_code=501)
    if provider != "printify":
        raise ValidationError("Invalid provider")

    current_app.logger.info("Connecting %s shop for %s", provider, user_id)
    workflow_client.verify_token(api_token, user_id, import_id=user_id, name=body.get("tokenName"))

    token = next((t for t in storage.tokens.list(user_id, provider) if t.get("token_ref") == api_token), None)
    if token is None:
        existing = storage.tokens.list(user_id, provider)
        token = storage.tokens.create(
            user_id, provider, api_token,
            name=body.get("tokenName") or f"Printify Token {len(existing) + 1}",
        )

    shops = workflow_client.list_shops(user_id, api_token_id=token["id"]).get("shops") or []
    current_app.logger.info("Token %s reaches %d shop(s)", token["id"], len(shops))
    return jsonify({"apiTokenId": token["id"], "tokenRef": api_token, "shops": shops})
