# Overview: Flask API route for dashboard figures.

# backend/mua_admin/routes/dashboard.py
from flask import Blueprint

from ..decorators import require_auth
from ..services import dashboard_service
from . import internal_error

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@require_auth
def dashboard_summary_route():
    try:
        return dashboard_service.get_summary()
    except Exception:
        return internal_error("Failed to build dashboard summary")
