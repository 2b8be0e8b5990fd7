# storefront/errors.py
from flask import jsonify
from werkzeug.exceptions import HTTPException


class StoreError(Exception):
    """Base for errors that map onto an HTTP response."""
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(StoreError):
    status_code = 400


class AuthError(StoreError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized", forbidden: bool = False):
        super().__init__(message, 403 if forbidden else 401)


class NotFoundError(StoreError):
    status_code = 404


class ConflictError(StoreError):
    status_code = 400


class UpstreamError(StoreError):
    status_code = 500


def register_error_handlers(app):
    @app.errorhandler(StoreError)
    def handle_store_error(e: StoreError):
        r = jsonify(error=e.message)
        r.status_code = e.status_code
        return r

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        r = jsonify(error=e.description)
        r.status_code = e.code or 500
        return r

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        app.logger.exception("Unhandled error: %s", e)
        r = jsonify(error="Internal server error")
        r.status_code = 500
        return r
