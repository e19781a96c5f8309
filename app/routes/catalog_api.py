"""Read-only Printify catalog: blueprints, their print providers and print areas."""
from flask import Blueprint, current_app, jsonify, request

from ..errors import ValidationError
from ..extensions import storage
from ..storage.repositories import BLUEPRINTS_COLLECTION, PRINT_AREAS_COLLECTION, PRINT_PROVIDERS_COLLECTION

bp = Blueprint("catalog_api", __name__)


def _int_arg(name: str) -> int:
    raw = request.args.get(name)
    if not raw:
        raise ValidationError(f"{name} is required")
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


@bp.get("/blueprints")
def list_blueprints():
    provider = request.args.get("provider") or "printify"
    rows = storage.store.find(BLUEPRINTS_COLLECTION, order_by="title", provider=provider)
    current_app.logger.info("Found %d blueprints for %s", len(rows), provider)
    return jsonify(rows)


@bp.get("/print-providers")
def list_print_providers():
    blueprint_id = _int_arg("blueprintId")
    rows = storage.store.find(PRINT_PROVIDERS_COLLECTION, order_by="title", blueprint_id=blueprint_id)
    current_app.logger.info("Found %d print providers for blueprint %s", len(rows), blueprint_id)
    return jsonify(rows)


@bp.get("/print-areas")
def list_print_areas():
    print_provider_id = _int_arg("print_provider_id")
    rows = storage.store.find(PRINT_AREAS_COLLECTION, order_by="name", print_provider_id=print_provider_id)
    return jsonify({"printAreas": rows})
