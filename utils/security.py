"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT
- JTI generation for token identifiers

Access and refresh tokens are signed with two different secrets and carry a
"type" claim, so a token of one class never verifies as the other.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Dict, Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

from flask import current_app

from utils.exceptions import InvalidTokenError, ExpiredTokenError

ph = PasswordHasher()

ACCESS = "access"
REFRESH = "refresh"

# (secret config key, ttl config key) per token class
_KEYS = {
    ACCESS: ("ACCESS_TOKEN_SECRET", "ACCESS_TOKEN_EXPIRES"),
    REFRESH: ("REFRESH_TOKEN_SECRET", "REFRESH_TOKEN_EXPIRES"),
}

# Verified against when the account does not exist, so the
# "no such user" path costs the same as a wrong password.
_DUMMY_HASH = ph.hash("not-a-real-password")


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        if password_hash is None:
            ph.verify(_DUMMY_HASH, password)
            return False
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _create_token(token_type: str, subject: str, extra: Dict[str, Any] | None = None) -> str:
    secret_key, ttl_key = _KEYS[token_type]
    now = _now()
    payload = {
        "iss": current_app.config.get("JWT_ISSUER", "user-account-api"),
        "sub": str(subject),
        "iat": int(now.timestamp()),
        "exp": int((now + current_app.config[ttl_key]).timestamp()),
        "type": token_type,
        "jti": generate_jti(),
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, current_app.config[secret_key], algorithm=current_app.config["JWT_ALGORITHM"])


def issue_access_token(user_id: str, **claims) -> str:
    """Short-lived token used to authenticate individual requests."""
    return _create_token(ACCESS, user_id, claims)


def issue_refresh_token(user_id: str) -> str:
    """Long-lived token whose only use is minting a new token pair."""
    return _create_token(REFRESH, user_id)


def verify_token(token: str, key_class: str = ACCESS) -> Dict[str, Any]:
    """
    Decode and validate a JWT against the secret of its class.
    Raises ExpiredTokenError when exp has passed and InvalidTokenError for
    anything else (bad signature, malformed, wrong type, no subject).
    """
    if key_class not in _KEYS:
        raise ValueError(f"Unknown token class: {key_class}")
    secret_key, _ = _KEYS[key_class]
    try:
        decoded = jwt.decode(
            token,
            current_app.config[secret_key],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            issuer=current_app.config.get("JWT_ISSUER", "user-account-api"),
            options={"require": ["exp", "sub", "iss"]},
        )
    except jwt.ExpiredSignatureError:
        raise ExpiredTokenError("Token expired")
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError(f"Invalid token: {exc}")

    if decoded.get("type") != key_class:
        raise InvalidTokenError("Wrong token type")
    return decoded
