# Overview: Session lookup and auth decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import AuthenticationError, AuthorizationError
from .services import token_service
from .services.token_service import UserView


def get_request_token() -> str | None:
    """Session token from the auth cookie, falling back to a Bearer header."""
    token = request.cookies.get(current_app.config["AUTH_COOKIE_NAME"])
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def get_current_user() -> UserView | None:
    """
    Decode the request's session token.

    Absent, malformed, tampered and expired tokens all yield None.
    """
    return token_service.decode_token(get_request_token())


def require_api_user() -> UserView:
    """Raising variant of the session check for handler code."""
    user = get_current_user()
    if user is None:
        raise AuthenticationError("Unauthorized")
    return user


def require_auth(f):
    """
    Require a valid session token.

    Sets g.current_user (a UserView). Returns a generic 401 for any failure:
    the response never says whether the token was missing, bad or expired.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.current_user = require_api_user()
        except AuthenticationError:
            return jsonify({"error": "Unauthorized"}), 401
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the authenticated user to hold one of the given roles (apply after @require_auth).

    Raises AuthorizationError, which the app error handler maps to 403.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                raise AuthenticationError("Unauthorized")
            if user.role not in roles:
                raise AuthorizationError()
            return f(*args, **kwargs)

        return decorated_function
    return decorator
