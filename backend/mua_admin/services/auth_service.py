# Overview: Credential verification and password hashing for back-office users.

"""
Authentication Service

Uses bcrypt for password hashing (cost factor from BCRYPT_ROUNDS, >= 12 in
production).

SECURITY NOTES:
- Identifiers are trimmed and lowercased before lookup; username OR email match
- Only active users can authenticate
- Unknown identifiers still pay for one bcrypt verification against a dummy
  hash, so "no such user" and "wrong password" take the same time
- Callers get None for every failure; the reason is never exposed
- Any lookup/hash error fails closed (None)
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from .token_service import UserView
from mua_admin.time_utils import utcnow


DEFAULT_ROLE = "admin"

# Dummy hashes keyed by cost factor, built by preload_dummy_hash at startup
_dummy_hashes: dict[int, bytes] = {}


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def _rounds() -> int:
    return int(current_app.config.get("BCRYPT_ROUNDS", 12))


def _dummy_hash(rounds: int) -> bytes:
    cached = _dummy_hashes.get(rounds)
    if cached is None:
        cached = bcrypt.hashpw(b"dummy-password-for-timing", bcrypt.gensalt(rounds=rounds))
        _dummy_hashes[rounds] = cached
    return cached


def preload_dummy_hash(rounds: int) -> None:
    """Build the dummy hash at startup so the first unknown-user login pays only checkpw."""
    _dummy_hash(rounds)


def normalize_identifier(identifier: str) -> str:
    return identifier.strip().lower()


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one number")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt at the configured cost factor."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=_rounds())
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt verification. Malformed hashes verify as False."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    username: str,
    email: str,
    password: str,
    name: str,
    role: str = DEFAULT_ROLE,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ValueError: If username or email is already taken
        PasswordValidationError: If password doesn't meet requirements
    """
    username = normalize_identifier(username)
    email = normalize_identifier(email)

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ValueError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        name=name.strip(),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(identifier: str, password: str) -> UserView | None:
    """
    Verify a username-or-email / password pair.

    Returns the sanitized UserView on success, None otherwise. Updates
    last_login_at on success.
    """
    try:
        normalized = normalize_identifier(identifier)

        user = db.session.query(User).filter(
            db.or_(User.username == normalized, User.email == normalized),
            User.is_active.is_(True),
        ).first()

        if not user:
            # Equal-cost work so a missing user is not distinguishable by latency
            bcrypt.checkpw(password.encode('utf-8'), _dummy_hash(_rounds()))
            return None

        if not verify_password(password, user.password_hash):
            return None

        user.last_login_at = utcnow()
        db.session.commit()
        return UserView.from_user(user)

    except Exception:
        current_app.logger.exception("Credential verification failed")
        db.session.rollback()
        return None
