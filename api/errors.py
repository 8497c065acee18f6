from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError as SchemaValidationError
from sqlalchemy.exc import IntegrityError
import logging


class AppError(Exception):
    """Base of the error taxonomy; carries the HTTP status it maps to."""

    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None, errors: list | None = None):
        self.message = message or self.default_message
        self.errors = list(errors or [])
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "success": False,
            "statusCode": self.status_code,
            "message": self.message,
            "errors": self.errors,
        }


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid input"


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Unauthorized request"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


class InternalError(AppError):
    status_code = 500
    default_message = "An unexpected error occurred"


def error_response(error: AppError):
    return jsonify(error.to_dict()), error.status_code


def success_response(data, message: str, status: int = 200):
    payload = {"statusCode": status, "data": data, "message": message, "success": True}
    return jsonify(payload), status


def register_error_handlers(app):
    # Errors raised past a service boundary
    @app.errorhandler(AppError)
    def handle_app_error(err: AppError):
        if err.status_code >= 500:
            logging.exception("Internal error", exc_info=err)
        return error_response(err)

    # Marshmallow validation errors map to 400
    @app.errorhandler(SchemaValidationError)
    def handle_validation_error(err: SchemaValidationError):
        if current_app and current_app.debug:
            logging.exception("Validation failed", exc_info=err)
        messages = err.messages
        if isinstance(messages, dict):
            errors = [{"field": field, "messages": msgs} for field, msgs in messages.items()]
        else:
            errors = list(messages)
        return error_response(ValidationError("Invalid input", errors=errors))

    # Unique constraints that slipped past the explicit existence checks
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        message = str(getattr(err, "orig", err))
        if current_app and current_app.debug:
            logging.exception("Integrity error", exc_info=err)
        if "unique" in message.lower():
            return error_response(ConflictError("User with this email or username already exists"))
        return error_response(ValidationError("Integrity error"))

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        code = err.code or 400
        payload = {"success": False, "statusCode": code, "message": err.description, "errors": []}
        return jsonify(payload), code

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logging.exception("Unhandled exception", exc_info=err)
        error = InternalError()
        if current_app and current_app.debug:
            error.errors.append({"type": err.__class__.__name__, "message": str(err)})
        return error_response(error)
