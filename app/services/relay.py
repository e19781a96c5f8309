"""Helpers shared by endpoints that validate a body and forward it to the workflow engine."""
from flask import jsonify, request

from ..errors import require_fields
from ..extensions import workflow_client


def request_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def pick(payload: dict, *names: str) -> dict:
    return {n: payload.get(n) for n in names}


def relay(operation: str, body: dict, required: tuple[str, ...], optional: tuple[str, ...] = (),
          defaults: dict | None = None):
    """Check ``required`` fields, forward them (plus ``optional``) and return the engine's JSON."""
    require_fields(body, *required)
    payload = pick(body, *required)
    for name in optional:
        if body.get(name) is not None:
            payload[name] = body[name]
    for name, value in (defaults or {}).items():
        payload.setdefault(name, value)
    return jsonify(workflow_client.call(operation, payload))
