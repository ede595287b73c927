# backend/mua_admin/__init__.py
import logging

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config, validate_config
from .errors import register_error_handlers
from .extensions import db, migrate


def create_app(test_config=None) -> Flask:
    """
    Application factory.

    Config precedence: Config (environment) < test_config overrides. Startup
    fails with RuntimeError when the session secret or bcrypt cost is unsafe.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    validate_config(app.config)
    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    # Dummy hash for unknown-user logins, built before the first request
    from .services.auth_service import preload_dummy_hash
    preload_dummy_hash(int(app.config["BCRYPT_ROUNDS"]))

    # remote_addr comes from the proxy-appended X-Forwarded-For hop only when proxies are trusted
    proxies = int(app.config["TRUSTED_PROXY_COUNT"])
    if proxies > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxies)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.pages import pages_bp
    from .routes.clients import clients_bp
    from .routes.products import products_bp
    from .routes.appointments import appointments_bp
    from .routes.orders import orders_bp
    from .routes.invoices import invoices_bp
    from .routes.dashboard import dashboard_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(pages_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(appointments_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(dashboard_bp)

    register_error_handlers(app)

    # HTTPS redirect, throttling, session guard
    from .guard import install_request_hooks
    install_request_hooks(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
