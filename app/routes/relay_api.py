"""
Endpoints that check a request's required fields and forward it to the
workflow engine, relaying the engine's JSON answer unchanged.
"""
from flask import Blueprint, current_app, jsonify

from ..errors import ApiError, ValidationError, require_fields
from ..extensions import workflow_client
from ..identity import current_user_id
from ..services.relay import relay, request_body
from ..services.workflow_client import mask_payload

bp = Blueprint("relay_api", __name__)

MOCKUP_ACTIONS = ("create", "getResult")


@bp.post("/validate-folder")
def validate_folder():
    return relay("validate_folder", request_body(), ("folderUrl", "userId"))


@bp.post("/validate-token")
def validate_token():
    body = request_body()
    current_app.logger.info("Validating Printify token: %s", mask_payload(body))
    return relay("verify_token", body, ("apiToken", "userId", "importId"),
                 optional=("name", "is_default"), defaults={"name": None, "is_default": False})


@bp.post("/verify-printify-token")
def verify_printify_token():
    return relay("verify_token", request_body(), ("apiToken", "userId", "importId"))


@bp.post("/log-printify-api-token")
def log_printify_api_token():
    return relay("log_api_token", request_body(), ("apiTokenId", "userId", "importId"))


@bp.post("/list-printify-shops")
def list_printify_shops():
    return relay("list_shops", request_body(), ("userId", "importId"))


@bp.post("/choose-shop")
def choose_shop():
    body = request_body()
    require_fields(body, "apiTokenId", "shopId", "userId")
    payload = {
        "apiTokenId": body["apiTokenId"],
        "shopId": body["shopId"],
        "userId": body["userId"],
        "isDefault": bool(body.get("isDefault") or False),
    }
    data = workflow_client.call("choose_shop", payload)

    if not data.get("id") or not data.get("name"):
        current_app.logger.error("choose-shop answer lacks id/name: %s", data)
        raise ApiError("Workflow engine did not return required fields (id, name)", details=data)

    current_app.logger.info("Shop %s recorded as store %s", body["shopId"], data["id"])
    return jsonify({"success": True, "store": data})


@bp.post("/fetch-images")
def fetch_images():
    return relay("fetch_images", request_body(), ("folderId", "userId", "importId"))


@bp.post("/import-to-printify")
def import_to_printify():
    return relay("import_to_printify", request_body(), ("folderId", "shopId", "userId", "importId"),
                 optional=("pushToShopify",), defaults={"pushToShopify": False})


@bp.post("/select-print-provider")
def select_print_provider():
    return relay("select_print_provider", request_body(), ("printProviderId", "userId", "importId"))


@bp.post("/create-preset")
def create_preset():
    return relay("create_preset", request_body(), ("blueprintId", "userId", "importId"))


@bp.post("/create-preset-from-printify-product")
def create_preset_from_printify_product():
    body = request_body()
    body["userId"] = current_user_id(body)
    return relay("create_preset_from_product", body, ("productId", "importId", "userId"))


@bp.post("/list-printify-products")
def list_printify_products():
    body = request_body()
    body["userId"] = current_user_id(body)
    return relay("list_printify_products", body, ("tokenRef", "importId", "userId"),
                 defaults={"page": body.get("page") or 1})


@bp.post("/mockup-jobs")
def mockup_jobs():
    body = request_body()
    user_id = current_user_id(body)
    require_fields(body, "importId", "action")
    action = body["action"]
    if action not in MOCKUP_ACTIONS:
        raise ValidationError('action must be "create" or "getResult"')
    if action == "getResult" and not body.get("mockupJobId"):
        raise ValidationError("mockupJobId is required for getResult action")

    payload = {"userId": user_id, "importId": body["importId"], "action": action}
    if body.get("mockupJobId"):
        payload["mockupJobId"] = body["mockupJobId"]
    return jsonify(workflow_client.call("mockup_jobs", payload))
