from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
import logging

from services.results import AuthResult, ErrorKind
from models.schemas.token import AuthResultSchema

auth_result_schema = AuthResultSchema()


def error_response(error: str, message: str, status: int, details: dict | None = None):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def auth_result_response(result: AuthResult):
    """AuthResult envelope: 200 on success, 400 on any failure."""
    return jsonify(auth_result_schema.dump(result)), 200 if result.success else 400


def flatten_messages(messages, prefix: str = "") -> list[str]:
    """Turn marshmallow's nested {field: [msg]} into ["field: msg", ...]."""
    if isinstance(messages, dict):
        out = []
        for key, value in messages.items():
            label = f"{prefix}.{key}" if prefix else str(key)
            out.extend(flatten_messages(value, label))
        return out
    if isinstance(messages, (list, tuple)):
        out = []
        for value in messages:
            out.extend(flatten_messages(value, prefix))
        return out
    return [f"{prefix}: {messages}" if prefix else str(messages)]


def register_error_handlers(app):
    # Marshmallow validation errors map to a failed AuthResult with field-level messages
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        if current_app and current_app.debug:
            logging.info("Payload rejected: %s", err.messages)
        result = AuthResult.failure(ErrorKind.INVALID_PAYLOAD, flatten_messages(err.messages))
        return auth_result_response(result)

    # 404 Not Found
    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", 404)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return error_response(err.name.upper().replace(" ", "_"), err.description, err.code or 400)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logging.exception("Unhandled exception", exc_info=err)
        details = None
        # In dev, include exception details to speed up debugging
        if current_app and current_app.debug:
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500, details=details)
