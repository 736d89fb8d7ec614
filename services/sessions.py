"""
Account and session lifecycle: register, login, logout and refresh-token
rotation.

Each user has a single refresh-token slot. A refresh token is honoured only
while it is the value in that slot, so login and rotation revoke the previous
token by overwriting it and logout revokes it by clearing it.

Credential and token failures are all reported as UnauthorizedError with
deliberately vague messages: "no such user" and "wrong password" are
indistinguishable to the caller.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from marshmallow import ValidationError

from models.schemas.user import UserRegisterSchema, UserLoginSchema
from models.user_store import UserStore
from utils.exceptions import (
    BadRequestError,
    ConflictError,
    InternalError,
    InvalidTokenError,
    UnauthorizedError,
)
from utils.security import REFRESH, issue_access_token, issue_refresh_token, verify_token
from utils.uploader import MediaUploader, discard, url_of

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid user credentials"
INVALID_REFRESH = "Invalid refresh token"
USED_REFRESH = "Refresh token is expired or used"

register_schema = UserRegisterSchema()
login_schema = UserLoginSchema()


class SessionService:
    def __init__(self, store: UserStore, uploader: MediaUploader):
        self.store = store
        self.uploader = uploader

    def _issue_pair(self, user) -> Tuple[str, str]:
        access = issue_access_token(user.id, username=user.username, email=user.email)
        refresh = issue_refresh_token(user.id)
        return access, refresh

    def register(self, fields: Dict, avatar_path: Optional[str], cover_path: Optional[str] = None) -> Dict:
        """
        Create an account. Temp files for avatar/cover are always consumed:
        either uploaded (which removes them) or discarded on early failure.
        """
        try:
            try:
                data = register_schema.load(fields or {})
            except ValidationError as err:
                raise BadRequestError("All fields are required", details=err.messages)

            if self.store.find_by_username_or_email(data["username"], data["email"]):
                raise ConflictError("User with email or username already exists")

            if not avatar_path:
                raise BadRequestError("Avatar file is required")

            avatar = url_of(self.uploader.upload(avatar_path))
            avatar_path = None
            if not avatar:
                raise BadRequestError("Avatar file is required")

            cover = url_of(self.uploader.upload(cover_path)) if cover_path else None
            cover_path = None

            try:
                user = self.store.create(
                    username=data["username"],
                    email=data["email"],
                    full_name=data["full_name"],
                    password=data["password"],
                    avatar=avatar,
                    cover_image=cover or "",
                )
            except ConflictError:
                # lost a race with a concurrent register; the uploads have no owner now
                logger.warning("Orphaned media after register conflict: %s", [u for u in (avatar, cover) if u])
                raise
        finally:
            discard(avatar_path)
            discard(cover_path)

        created = self.store.load_sanitized(user.id)
        if created is None:
            raise InternalError("Something went wrong while registering the user")
        logger.info("Registered user %s", user.id)
        return created

    def login(self, credentials: Dict) -> Tuple[Dict, str, str]:
        try:
            data = login_schema.load(credentials or {})
        except ValidationError as err:
            raise BadRequestError("Invalid input", details=err.messages)

        if not data.get("username") and not data.get("email"):
            raise BadRequestError("username or email is required")

        user = self.store.find_by_username_or_email(data.get("username"), data.get("email"))
        # verify_secret runs even without a user so both failures take the same time
        if not self.store.verify_secret(user, data.get("password") or ""):
            logger.warning("Failed login attempt")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        access, refresh = self._issue_pair(user)
        self.store.set_refresh_token(user.id, refresh)
        logger.info("User %s logged in", user.id)
        return self.store.load_sanitized(user.id), access, refresh

    def logout(self, user_id: str) -> None:
        self.store.set_refresh_token(user_id, None)
        logger.info("User %s logged out", user_id)

    def rotate(self, presented: Optional[str]) -> Tuple[str, str]:
        """Trade a live refresh token for a new access/refresh pair."""
        if not presented:
            raise UnauthorizedError("Unauthorized request")

        try:
            decoded = verify_token(presented, REFRESH)
        except InvalidTokenError:
            raise UnauthorizedError(INVALID_REFRESH)

        user = self.store.get(decoded.get("sub"))
        if user is None:
            raise UnauthorizedError(INVALID_REFRESH)

        if user.refresh_token != presented:
            logger.warning("Rejected stale refresh token for user %s", user.id)
            raise UnauthorizedError(USED_REFRESH)

        access, refresh = self._issue_pair(user)
        if not self.store.swap_refresh_token(user.id, presented, refresh):
            # another rotation or a logout got there first
            logger.warning("Lost refresh token race for user %s", user.id)
            raise UnauthorizedError(USED_REFRESH)

        logger.info("Rotated tokens for user %s", user.id)
        return access, refresh
