# Overview: Database-backed request throttling and login audit events.

"""
Request Throttling Service

Prevents brute-force logins and hammering of expensive endpoints.

Counts recent SecurityEvent rows per (event_type, client IP) instead of an
in-memory map, so limits are shared by every worker and survive restarts.

- Login: LOGIN_RATE_LIMIT attempts per LOGIN_RATE_WINDOW_SECONDS
- Generate/download endpoints: SENSITIVE_RATE_LIMIT per SENSITIVE_RATE_WINDOW_SECONDS
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SecurityEvent
from mua_admin.time_utils import utcnow


EVENT_LOGIN_ATTEMPT = "LOGIN_ATTEMPT"
EVENT_LOGIN_FAILED = "LOGIN_FAILED"
EVENT_LOGIN_SUCCESS = "LOGIN_SUCCESS"
EVENT_SENSITIVE_REQUEST = "SENSITIVE_REQUEST"


def count_recent(event_type: str, ip_address: str, window: timedelta) -> int:
    cutoff = utcnow() - window
    return db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == event_type,
        SecurityEvent.ip_address == ip_address,
        SecurityEvent.occurred_at >= cutoff,
    ).count()


def hit(
    event_type: str,
    ip_address: str,
    *,
    limit: int,
    window_seconds: int,
    resource: str | None = None,
    user_agent: str | None = None,
) -> bool:
    """
    Record one request against a bucket and report whether it is allowed.

    Returns False when the bucket already holds `limit` events inside the
    window; the rejected request is not recorded.
    """
    window = timedelta(seconds=window_seconds)
    if count_recent(event_type, ip_address, window) >= limit:
        current_app.logger.warning(
            "Rate limit exceeded for %s from %s on %s", event_type, ip_address, resource
        )
        return False

    db.session.add(SecurityEvent(
        event_type=event_type,
        resource=resource,
        success=True,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    ))
    db.session.commit()
    return True


def record_login_result(
    *,
    success: bool,
    user_id: int | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Persist the login outcome for auditing.

    The submitted identifier is deliberately not stored on failures.
    """
    db.session.add(SecurityEvent(
        user_id=user_id,
        event_type=EVENT_LOGIN_SUCCESS if success else EVENT_LOGIN_FAILED,
        resource="/api/auth/login",
        action="POST",
        success=success,
        reason=None if success else "Invalid credentials",
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    ))
    db.session.commit()


def cleanup_security_events(retention_days: int = 90) -> int:
    """Delete security events older than the retention window. Returns count deleted."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete()
    db.session.commit()
    return deleted
