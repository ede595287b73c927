from __future__ import annotations

from ..extensions import db
from mua_admin.time_utils import to_utc_z


class SecurityEvent(db.Model):
    """
    Security event audit log.

    Records login outcomes and throttled-request hits. The request throttle
    counts rows here, so rate limits survive restarts and are shared by all
    worker processes.

    IMMUTABLE: Never update. Old rows are pruned by
    ``flask maintenance cleanup-security-events``.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_type_ip_occurred", "event_type", "ip_address", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # LOGIN_ATTEMPT, LOGIN_FAILED, LOGIN_SUCCESS, SENSITIVE_REQUEST, RATE_LIMITED
    event_type = db.Column(db.String(64), nullable=False, index=True)
    resource = db.Column(db.String(255), nullable=True)
    action = db.Column(db.String(64), nullable=True)

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    user = db.relationship("User", backref=db.backref("security_events", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "occurred_at": to_utc_z(self.occurred_at),
        }
