# Overview: Stateless signed session tokens (encode/decode) for cookie auth.

"""
Session Token Codec

Tokens are self-contained: ``base64(payload) + "." + base64(HMAC-SHA256)``.
Nothing is stored server-side, so a request is authorized without a database
round trip.

SECURITY NOTES:
- Signature is computed over the base64 payload text with the process-wide
  SESSION_SECRET (>= 32 chars, enforced at startup). The secret is never logged.
- Signatures are compared with hmac.compare_digest (constant time).
- A fresh 16-byte nonce makes every issued token unique.
- Expiry is absolute: TOKEN_TTL_MS from issuance, no renewal on use.
- There is no revocation list. Rotating SESSION_SECRET invalidates every
  outstanding token at once.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import secrets
from dataclasses import asdict, dataclass

from flask import current_app

from mua_admin.time_utils import now_ms

DEFAULT_TOKEN_TTL_MS = 24 * 60 * 60 * 1000
NONCE_BYTES = 16


@dataclass(frozen=True)
class UserView:
    """Sanitized user identity carried in the token (never includes the hash)."""
    id: int
    username: str
    email: str
    name: str
    role: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_user(cls, user) -> "UserView":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            name=user.name,
            role=user.role,
        )


def _resolve_secret(secret: str | bytes | None) -> bytes:
    if secret is None:
        secret = current_app.config["SESSION_SECRET"]
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    return secret


def _resolve_ttl(ttl_ms: int | None) -> int:
    if ttl_ms is not None:
        return ttl_ms
    if current_app:
        return current_app.config.get("TOKEN_TTL_MS", DEFAULT_TOKEN_TTL_MS)
    return DEFAULT_TOKEN_TTL_MS


def _sign(payload_b64: str, key: bytes) -> str:
    digest = hmac.new(key, payload_b64.encode("ascii"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def encode_token(
    user,
    *,
    secret: str | bytes | None = None,
    issued_at_ms: int | None = None,
) -> str:
    """
    Issue a signed token for a user (User model or UserView).

    issued_at_ms defaults to the current time; tests pass it explicitly to
    exercise the expiry boundary.
    """
    view = user if isinstance(user, UserView) else UserView.from_user(user)
    payload = {
        **view.to_dict(),
        "timestamp": now_ms() if issued_at_ms is None else issued_at_ms,
        "nonce": secrets.token_hex(NONCE_BYTES),
    }

    payload_bytes = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    payload_b64 = base64.b64encode(payload_bytes).decode("ascii")

    return f"{payload_b64}.{_sign(payload_b64, _resolve_secret(secret))}"


def decode_token(
    token: str | None,
    *,
    secret: str | bytes | None = None,
    now: int | None = None,
    ttl_ms: int | None = None,
) -> UserView | None:
    """
    Verify a token and return the embedded user, or None.

    Returns None for every failure (malformed, bad signature, unparsable,
    expired) so callers cannot tell the cases apart.
    """
    if not token or not isinstance(token, str):
        return None

    payload_b64, sep, signature = token.rpartition(".")
    if not sep or not payload_b64 or not signature:
        return None

    try:
        expected = _sign(payload_b64, _resolve_secret(secret))
        received = signature.encode("utf-8")
    except UnicodeEncodeError:
        return None

    if not hmac.compare_digest(received, expected.encode("ascii")):
        return None

    try:
        data = json.loads(base64.b64decode(payload_b64, validate=True).decode("utf-8"))
        issued_at = int(data["timestamp"])
        view = UserView(
            id=data["id"],
            username=data["username"],
            email=data["email"],
            name=data["name"],
            role=data["role"],
        )
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError):
        return None

    current = now_ms() if now is None else now
    if current - issued_at > _resolve_ttl(ttl_ms):
        return None

    return view
