from flask import Blueprint, current_app, jsonify, request

from ..errors import ValidationError
from ..extensions import storage
from ..identity import current_user_id
from ..services.relay import request_body

bp = Blueprint("presets_api", __name__)

PRESET_REQUIRED = ("name", "blueprint_id", "print_provider_id", "placements")


@bp.get("/presets")
def list_presets():
    user_id = current_user_id()
    presets = storage.presets.list(user_id)
    return jsonify({"presets": presets})


@bp.post("/presets")
def create_preset():
    body = request_body()
    user_id = current_user_id(body)
    missing = [k for k in PRESET_REQUIRED if body.get(k) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    preset = storage.presets.create(
        user_id, body["name"], body["blueprint_id"], body["print_provider_id"], body["placements"],
    )
    current_app.logger.info("Created preset %s for %s", preset["id"], user_id)
    return jsonify({"preset": preset}), 201


@bp.put("/presets")
def update_preset():
    body = request_body()
    user_id = current_user_id(body)
    if not body.get("id"):
        raise ValidationError("Preset ID is required")
    preset = storage.presets.update(
        user_id, body["id"],
        name=body.get("name"),
        blueprint_id=body.get("blueprint_id"),
        print_provider_id=body.get("print_provider_id"),
        placements=body.get("placements"),
        visibility=body.get("visibility"),
        favorite=body.get("favorite"),
    )
    return jsonify({"preset": preset})


@bp.delete("/presets")
def delete_preset():
    user_id = current_user_id()
    preset_id = request.args.get("id")
    if not preset_id:
        raise ValidationError("Preset ID is required")
    storage.presets.delete(user_id, preset_id)
    current_app.logger.info("Deleted preset %s", preset_id)
    return jsonify({"success": True})
