"""
Error types shared by every endpoint and the handlers that render them.

Every failure leaves the service as ``{"error": str, "details"?: ...}`` with a
status reflecting its class: 400 validation, 404 not found, 409 conflict,
upstream status passthrough, 500 anything unexpected.
"""
from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None, details=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(ApiError):
    status_code = 400


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    status_code = 409


class UpstreamError(ApiError):
    """A collaborator answered with a non-success status; its status is kept."""


def missing_fields_message(missing: list[str]) -> str:
    if len(missing) == 1:
        return f"{missing[0]} is required"
    return f"{', '.join(missing)} are required"


def require_fields(payload: dict, *names: str) -> dict:
    """Raise a 400 naming every field of ``names`` that is absent or empty."""
    missing = [n for n in names if payload.get(n) in (None, "")]
    if missing:
        raise ValidationError(missing_fields_message(missing))
    return payload


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def _api_error(err: ApiError):
        if err.status_code >= 500:
            current_app.logger.error("%s: %s", type(err).__name__, err.message)
        else:
            current_app.logger.warning("%s: %s", type(err).__name__, err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        return jsonify({"error": err.description or err.name}), err.code

    @app.errorhandler(Exception)
    def _unexpected(err: Exception):
        current_app.logger.exception("Unexpected error")
        return jsonify({"error": "Internal server error"}), 500
