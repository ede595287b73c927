# backend/mua_admin/config.py
from __future__ import annotations
import os

MIN_SECRET_LENGTH = 32
MIN_BCRYPT_ROUNDS = 12


class Config:
    # HMAC key for session tokens. Required: startup fails without it.
    SESSION_SECRET = os.environ.get("SESSION_SECRET")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///mua_admin.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "production" turns on Secure cookies, HTTPS redirects and hides error detail
    APP_ENV = os.environ.get("APP_ENV", "development")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Number of reverse proxies in front of the app whose X-Forwarded-For hop is trusted
    TRUSTED_PROXY_COUNT = int(os.environ.get("TRUSTED_PROXY_COUNT", 0))

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", MIN_BCRYPT_ROUNDS))

    # Absolute token lifetime, measured from issuance
    TOKEN_TTL_MS = 24 * 60 * 60 * 1000

    AUTH_COOKIE_NAME = "auth_token"
    AUTH_COOKIE_MAX_AGE = 60 * 60 * 24 * 7
    REDIRECT_MARKER_COOKIE = "auth_redirected"
    REDIRECT_MARKER_MAX_AGE = 10

    INVOICE_DEFAULT_DUE_DAYS = 7

    LOGIN_RATE_LIMIT = 5
    LOGIN_RATE_WINDOW_SECONDS = 15 * 60
    SENSITIVE_RATE_LIMIT = 20
    SENSITIVE_RATE_WINDOW_SECONDS = 60


def is_production(config) -> bool:
    return config.get("APP_ENV") == "production"


def validate_config(config) -> None:
    """
    Fail fast on unsafe settings.

    Raises RuntimeError when the session secret is missing or too short, or when
    bcrypt cost is below the minimum outside of tests.
    """
    secret = config.get("SESSION_SECRET")
    if not secret:
        raise RuntimeError("SESSION_SECRET environment variable is required")
    if len(secret) < MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"SESSION_SECRET must be at least {MIN_SECRET_LENGTH} characters"
        )

    rounds = int(config.get("BCRYPT_ROUNDS", MIN_BCRYPT_ROUNDS))
    if rounds < MIN_BCRYPT_ROUNDS and not config.get("TESTING"):
        raise RuntimeError(f"BCRYPT_ROUNDS must be >= {MIN_BCRYPT_ROUNDS}")
