# Overview: Error taxonomy for the POS API and the Flask handlers that render it.

"""
Every domain error carries the HTTP status it maps to and an optional
details dict. Routes let these propagate; the handlers registered in
register_error_handlers() turn them into the standard failure envelope:

    {"success": false, "message": "...", "details": {...}}

Internal error text ("error") is attached only when EXPOSE_ERROR_DETAILS
is enabled.
"""

from __future__ import annotations

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException


class PosError(Exception):
    """Base class for errors surfaced to API clients."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(PosError, ValueError):
    """400-level input problem."""
    status_code = 400


class InvalidAmountError(PosError, ValueError):
    """Negative quantity, or a deduction larger than what the batch holds."""
    status_code = 400


class NotFoundError(PosError):
    status_code = 404


class ConflictError(PosError, ValueError):
    """409-level business rule conflict (e.g., duplicate reference number)."""
    status_code = 409


class InsufficientStockError(PosError):
    """Requested quantity exceeds the sum of active batches for a product."""
    status_code = 409

    def __init__(self, product_id: int, available: int, requested: int):
        super().__init__(
            f"Insufficient stock. Available: {available}, Requested: {requested}",
            details={"productId": product_id, "available": available, "requested": requested},
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class UserResolutionError(PosError):
    status_code = 422


class InvalidDiscountConfigError(PosError):
    status_code = 500


class PersistenceError(PosError):
    """Wraps a failure raised by the data store."""
    status_code = 500

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


def error_envelope(message: str, details: dict | None = None, error: str | None = None) -> dict:
    body: dict = {"success": False, "message": message}
    if details:
        body["details"] = details
    if error and current_app.config.get("EXPOSE_ERROR_DETAILS"):
        body["error"] = error
    return body


def register_error_handlers(app) -> None:
    @app.errorhandler(PosError)
    def handle_pos_error(exc: PosError):
        if exc.status_code >= 500:
            current_app.logger.error("%s: %s", type(exc).__name__, exc.message)
        cause = getattr(exc, "cause", None)
        body = error_envelope(exc.message, exc.details, error=str(cause) if cause else None)
        return jsonify(body), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify(error_envelope(exc.description or exc.name)), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        current_app.logger.exception("Unhandled error")
        return jsonify(error_envelope("Internal server error", error=repr(exc))), 500
