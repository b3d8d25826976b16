from __future__ import annotations

import base64
import hashlib
import os

from cryptography.fernet import Fernet, InvalidToken
from flask import current_app
from passlib.context import CryptContext


pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)


def hash_client_key(client_hash: str) -> str:
    """Store an argon2 hash of the client-provided SHA-256(passphrase)."""
    return pwd_context.hash(client_hash)


def verify_client_key(client_hash: str, stored_hash: str) -> bool:
    return pwd_context.verify(client_hash, stored_hash)


# ---------------------------------------------------------------------------
# Bearer access tokens
#
# A token is a Fernet token wrapping the user id. Fernet embeds the issue
# timestamp, so expiry is checked on decrypt with ACCESS_TOKEN_TTL_SECONDS.
# Rotating SECRET_KEY (or ACCESS_TOKEN_KEY) invalidates every issued token.
# ---------------------------------------------------------------------------


def _token_fernet() -> Fernet:
    """Returns a Fernet instance keyed by ACCESS_TOKEN_KEY or derived from SECRET_KEY."""
    explicit = (current_app.config.get("ACCESS_TOKEN_KEY") or os.environ.get("ACCESS_TOKEN_KEY") or "").strip()
    if explicit:
        # Expect a urlsafe base64-encoded 32-byte key.
        return Fernet(explicit.encode("utf-8"))

    secret = (current_app.config.get("SECRET_KEY") or "").encode("utf-8")
    digest = hashlib.sha256(b"santa-portal-tokens|" + secret).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def issue_access_token(user_id: str) -> str:
    """Encrypt user_id -> bearer token (string)."""
    return _token_fernet().encrypt(user_id.encode("utf-8")).decode("utf-8")


def read_access_token(token: str) -> str:
    """Decrypt bearer token -> user_id. Raises ValueError when invalid or expired."""
    ttl = int(current_app.config.get("ACCESS_TOKEN_TTL_SECONDS", 43200))
    try:
        raw = _token_fernet().decrypt(token.encode("utf-8"), ttl=ttl)
        return raw.decode("utf-8")
    except (InvalidToken, UnicodeError, TypeError) as e:
        raise ValueError("Invalid access token") from e


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
