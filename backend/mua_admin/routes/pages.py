# Overview: Navigational page endpoints routed by the session guard.

# backend/mua_admin/routes/pages.py
"""
Page endpoints.

These exist as the targets the session guard redirects between; rendering is
the frontend's concern, so each returns a small JSON page payload. Access
control happens in guard.py before these handlers run.
"""
from flask import Blueprint, request

from ..decorators import get_current_user

pages_bp = Blueprint("pages", __name__)


@pages_bp.get("/login")
def login_page():
    return {"page": "login", "next": request.args.get("next")}


@pages_bp.get("/dashboard")
def dashboard_page():
    user = get_current_user()
    return {"page": "dashboard", "user": user.to_dict() if user else None}
