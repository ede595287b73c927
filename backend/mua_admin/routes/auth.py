# Overview: Flask API routes for login, session check and logout.

# backend/mua_admin/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Uniform 401 for every credential failure (unknown user, wrong password,
  inactive account): the response never reveals which one happened
- Session token delivered only as an HttpOnly cookie
- Login throttling happens in the request hooks (see guard.py) before the
  handler runs
- Every attempt is written to the security_events audit table
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..config import is_production
from ..decorators import require_auth
from ..guard import client_ip
from ..services import auth_service
from ..services import throttle_service
from ..services import token_service
from . import internal_error


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

INVALID_CREDENTIALS = "Invalid username or password"


def _set_auth_cookie(response, token: str) -> None:
    cfg = current_app.config
    response.set_cookie(
        cfg["AUTH_COOKIE_NAME"],
        token,
        max_age=cfg["AUTH_COOKIE_MAX_AGE"],
        httponly=True,
        secure=is_production(cfg),
        samesite="Lax",
        path="/",
    )


@auth_bp.post("/login")
def login_route():
    """
    Verify credentials and issue a session token cookie.

    Body: {"username": str, "password": str}. "username" also accepts an email.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not username or not password:
            return jsonify({"error": "Username and password are required"}), 400
        if not isinstance(username, str) or not isinstance(password, str):
            return jsonify({"error": INVALID_CREDENTIALS}), 401

        user = auth_service.authenticate(username, password)

        throttle_service.record_login_result(
            success=user is not None,
            user_id=user.id if user else None,
            ip_address=client_ip(),
            user_agent=request.headers.get("User-Agent"),
        )

        if user is None:
            return jsonify({"error": INVALID_CREDENTIALS}), 401

        token = token_service.encode_token(user)
        response = jsonify({"success": True, "user": user.to_dict()})
        _set_auth_cookie(response, token)
        return response, 200

    except Exception:
        return internal_error("Failed to login user")


@auth_bp.get("/check")
@require_auth
def check_route():
    """Report the session's user view; 401 when the token is absent or invalid."""
    return jsonify({"success": True, "user": g.current_user.to_dict()}), 200


@auth_bp.post("/logout")
def logout_route():
    """
    Clear the auth cookie.

    Tokens are stateless, so logout only drops the client's copy. A token
    captured before logout stays valid until its TTL elapses.
    """
    response = jsonify({"success": True, "message": "Logged out"})
    response.delete_cookie(current_app.config["AUTH_COOKIE_NAME"], path="/")
    return response, 200
