from __future__ import annotations
from functools import wraps
from flask import request, g

from models import storage
from models.user_store import UserStore
from utils.exceptions import UnauthorizedError, InvalidTokenError
from utils.security import ACCESS, verify_token

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def extract_token(req=None) -> str | None:
    """accessToken cookie first, then an `Authorization: Bearer <token>` header."""
    req = req or request
    token = req.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    auth = req.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return None


def authenticate(token: str | None, store: UserStore | None = None) -> dict:
    """Resolve an access token to the sanitized user it belongs to."""
    if not token:
        raise UnauthorizedError("Unauthorized request")
    try:
        decoded = verify_token(token, ACCESS)
    except InvalidTokenError:
        raise UnauthorizedError("Invalid access token")

    store = store or UserStore(storage)
    user = store.load_sanitized(decoded.get("sub"))
    if not user:
        raise UnauthorizedError("Invalid access token")
    return user


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = authenticate(extract_token())
            g.current_user = user
            g.current_user_id = user["id"]
            return fn(*args, **kwargs)

        return wrapper

    return decorator
