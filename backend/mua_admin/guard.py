# Overview: Request hooks: HTTPS enforcement, throttling and the navigational session guard.

"""
Navigational session guard.

Every non-API request is routed by a pure function of (path class, session
state):

    path class     authenticated          unauthenticated
    public         redirect /dashboard    allow
    protected      allow                  redirect /login?next=<path>
    root           redirect /dashboard    redirect /login

Loop guard: when an authenticated user is bounced from /login to /dashboard,
a short-lived one-shot marker cookie is set. A /login request that arrives
carrying the marker is let through (and the marker cleared) instead of being
redirected again. This replaces trusting the client-supplied Referer header.

API routes are not redirected; they use @require_auth and answer 401.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

from flask import Flask, current_app, g, jsonify, redirect, request

from .config import is_production
from .decorators import get_current_user
from .services import throttle_service


LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"
ROOT_PATH = "/"
PUBLIC_PATHS = frozenset({LOGIN_PATH})
EXEMPT_PREFIXES = ("/api/", "/static/")

PATH_PUBLIC = "public"
PATH_PROTECTED = "protected"
PATH_ROOT = "root"
PATH_EXEMPT = "exempt"


@dataclass(frozen=True)
class GuardDecision:
    redirect_to: str | None = None
    set_marker: bool = False
    clear_marker: bool = False

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None


def classify_path(path: str) -> str:
    if path == ROOT_PATH:
        return PATH_ROOT
    if path == "/api" or path.startswith(EXEMPT_PREFIXES):
        return PATH_EXEMPT
    if path.rstrip("/") in PUBLIC_PATHS:
        return PATH_PUBLIC
    return PATH_PROTECTED


def decide(path: str, authenticated: bool, just_redirected: bool = False) -> GuardDecision:
    """Routing policy for one navigational request."""
    path_class = classify_path(path)

    if path_class == PATH_EXEMPT:
        return GuardDecision()

    if path_class == PATH_ROOT:
        return GuardDecision(redirect_to=DASHBOARD_PATH if authenticated else LOGIN_PATH)

    if path_class == PATH_PUBLIC:
        if not authenticated:
            return GuardDecision()
        if just_redirected:
            return GuardDecision(clear_marker=True)
        return GuardDecision(redirect_to=DASHBOARD_PATH, set_marker=True)

    if authenticated:
        return GuardDecision()
    return GuardDecision(redirect_to=f"{LOGIN_PATH}?{urlencode({'next': path})}")


def client_ip() -> str:
    """
    Peer address used for throttling and audit rows.

    Forwarding headers are never read here: behind a proxy, TRUSTED_PROXY_COUNT
    installs ProxyFix, which rewrites remote_addr from the proxy-appended hops.
    """
    return request.remote_addr or "unknown"


def _enforce_https():
    if not is_production(current_app.config):
        return None
    if request.headers.get("X-Forwarded-Proto") == "https":
        return None
    return redirect(f"https://{request.host}{request.full_path.rstrip('?')}", code=301)


def _throttle():
    path = request.path
    cfg = current_app.config

    if path == "/api/auth/login" and request.method == "POST":
        allowed = throttle_service.hit(
            throttle_service.EVENT_LOGIN_ATTEMPT,
            client_ip(),
            limit=cfg["LOGIN_RATE_LIMIT"],
            window_seconds=cfg["LOGIN_RATE_WINDOW_SECONDS"],
            resource=path,
            user_agent=request.headers.get("User-Agent"),
        )
        if not allowed:
            return jsonify({"error": "Too many login attempts. Please try again later."}), 429

    elif "/download-" in path or "/generate-" in path:
        allowed = throttle_service.hit(
            throttle_service.EVENT_SENSITIVE_REQUEST,
            client_ip(),
            limit=cfg["SENSITIVE_RATE_LIMIT"],
            window_seconds=cfg["SENSITIVE_RATE_WINDOW_SECONDS"],
            resource=path,
            user_agent=request.headers.get("User-Agent"),
        )
        if not allowed:
            return jsonify({"error": "Rate limit exceeded. Please slow down."}), 429

    return None


def _session_guard():
    if classify_path(request.path) == PATH_EXEMPT:
        return None

    cfg = current_app.config
    marker_name = cfg["REDIRECT_MARKER_COOKIE"]
    decision = decide(
        request.path,
        authenticated=get_current_user() is not None,
        just_redirected=request.cookies.get(marker_name) == "1",
    )

    if decision.clear_marker:
        g.clear_redirect_marker = True

    if decision.allowed:
        return None

    response = redirect(decision.redirect_to)
    if decision.set_marker:
        response.set_cookie(
            marker_name,
            "1",
            max_age=cfg["REDIRECT_MARKER_MAX_AGE"],
            httponly=True,
            secure=is_production(cfg),
            samesite="Lax",
            path="/",
        )
    return response


def _clear_marker(response):
    if g.pop("clear_redirect_marker", False):
        response.delete_cookie(current_app.config["REDIRECT_MARKER_COOKIE"], path="/")
    return response


def install_request_hooks(app: Flask) -> None:
    """Register hooks in order: HTTPS redirect, throttling, session guard."""
    app.before_request(_enforce_https)
    app.before_request(_throttle)
    app.before_request(_session_guard)
    app.after_request(_clear_marker)
