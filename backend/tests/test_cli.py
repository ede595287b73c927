"""
CLI command tests (flask system / users / maintenance).
"""

from datetime import timedelta

from mua_admin.models import SecurityEvent, User
from mua_admin.services.auth_service import authenticate
from mua_admin.time_utils import utcnow


def _create_args(username="owner", password="Password123"):
    return [
        "users", "create",
        "--username", username,
        "--email", f"{username}@mua.local",
        "--password", password,
        "--name", "Owner",
        "--role", "admin",
    ]


class TestUserCommands:

    def test_create_user(self, app, db_session):
        result = app.test_cli_runner().invoke(args=_create_args())

        assert result.exit_code == 0, result.output
        assert "PASS Created user: owner" in result.output
        assert authenticate("owner", "Password123") is not None

    def test_create_rejects_weak_password(self, app, db_session):
        result = app.test_cli_runner().invoke(args=_create_args(password="weak"))

        assert result.exit_code != 0
        assert "Password validation failed" in result.output
        assert db_session.query(User).count() == 0

    def test_create_rejects_duplicate(self, app, admin_user):
        result = app.test_cli_runner().invoke(args=_create_args(username="admin"))
        assert result.exit_code != 0
        assert "already exists" in result.output

    def test_list_users(self, app, admin_user):
        result = app.test_cli_runner().invoke(args=["users", "list"])
        assert "admin@mua.local" in result.output

    def test_deactivate_blocks_login(self, app, admin_user):
        result = app.test_cli_runner().invoke(args=["users", "deactivate", "admin"])

        assert result.exit_code == 0
        assert authenticate("admin", "Password123") is None

    def test_deactivate_unknown(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["users", "deactivate", "ghost"])
        assert result.exit_code != 0


class TestSystemCommands:

    def test_generate_secret_is_long_enough(self, app):
        result = app.test_cli_runner().invoke(args=["system", "generate-secret"])
        assert result.exit_code == 0
        assert len(result.output.strip()) >= 32


class TestMaintenanceCommands:

    def test_cleanup_security_events(self, app, db_session):
        db_session.add_all([
            SecurityEvent(event_type="LOGIN_FAILED", success=False, occurred_at=utcnow() - timedelta(days=120)),
            SecurityEvent(event_type="LOGIN_FAILED", success=False, occurred_at=utcnow() - timedelta(days=1)),
        ])
        db_session.commit()

        result = app.test_cli_runner().invoke(
            args=["maintenance", "cleanup-security-events", "--retention-days", "90"]
        )

        assert "Deleted 1 security events" in result.output
        assert db_session.query(SecurityEvent).count() == 1
