# Overview: Error taxonomy shared by services and routes.

"""
Application error taxonomy.

Every error carries the HTTP status a route maps it to. Services raise these;
routes catch the ones they expect and translate them to JSON responses.

- AuthenticationError: bad credentials, bad/expired/tampered token (401).
  The message is always generic and never says *why*.
- AuthorizationError: valid session, insufficient role (403).
- ValidationError: missing/malformed input, amount rules (400).
- ConflictError: unique-constraint races that survived a retry (409).
- NotFoundError: referenced order/client/invoice does not exist (404).
"""

from .extensions import db


class AppError(Exception):
    """Base class for expected, client-facing failures."""
    status_code = 500


class AuthenticationError(AppError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class AuthorizationError(AppError):
    status_code = 403

    def __init__(self, message: str = "Forbidden: Insufficient permissions"):
        super().__init__(message)


class ValidationError(AppError, ValueError):
    """400-level input problem."""
    status_code = 400


class ConflictError(AppError, ValueError):
    """409-level business rule conflict (e.g., duplicate product name)."""
    status_code = 409


class NotFoundError(AppError, LookupError):
    status_code = 404


def register_error_handlers(app) -> None:
    """Map AppError subclasses to JSON bodies with their status code."""
    @app.errorhandler(AppError)
    def handle_app_error(e):
        if e.status_code >= 500:
            app.logger.exception("Unhandled application error")
            db.session.rollback()
            return {"error": "Internal server error"}, 500
        return {"error": str(e)}, e.status_code
