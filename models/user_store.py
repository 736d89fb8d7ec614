"""
UserStore: persistence for user accounts on top of DBStorage.

Route and service code never touches the session directly for users. The
refresh-token slot is only ever written through set_refresh_token (plain
overwrite) or swap_refresh_token (compare-and-set in one UPDATE, so two
rotations racing on the same token cannot both win).
"""
from __future__ import annotations

import logging

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError

from models.user import User
from models.schemas.user import UserOutSchema
from utils.exceptions import ConflictError
from utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

user_out_schema = UserOutSchema()


class UserStore:
    def __init__(self, storage):
        self.storage = storage

    @property
    def session(self):
        return self.storage.get_session()

    def get(self, user_id: str) -> User | None:
        if not user_id:
            return None
        # always reread the row: the refresh slot may have changed under us
        return self.session.get(User, user_id, populate_existing=True)

    def find_by_username_or_email(self, username: str | None = None, email: str | None = None) -> User | None:
        conditions = []
        if username:
            conditions.append(User.username == username.lower())
        if email:
            conditions.append(User.email == email.lower())
        if not conditions:
            return None
        return self.session.query(User).filter(or_(*conditions)).first()

    def create(self, username, email, full_name, password, avatar, cover_image="") -> User:
        user = User(
            username=username.lower(),
            email=email.lower(),
            full_name=full_name,
            password_hash=hash_password(password),
            avatar=avatar,
            cover_image=cover_image or "",
        )
        self.storage.new(user)
        try:
            self.storage.save()
        except IntegrityError:
            # unique index backstop for a register racing another one
            raise ConflictError("User with email or username already exists")
        return user

    def verify_secret(self, user: User | None, password: str) -> bool:
        return verify_password(password, user.password_hash if user else None)

    def set_refresh_token(self, user_id: str, token: str | None) -> None:
        self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(refresh_token=token)
            .execution_options(synchronize_session="fetch")
        )
        self.storage.save()

    def swap_refresh_token(self, user_id: str, expected: str, new: str) -> bool:
        """Install `new` only if the slot still holds `expected`."""
        result = self.session.execute(
            update(User)
            .where(User.id == user_id, User.refresh_token == expected)
            .values(refresh_token=new)
            .execution_options(synchronize_session="fetch")
        )
        self.storage.save()
        return result.rowcount == 1

    def load_sanitized(self, user_id: str) -> dict | None:
        user = self.get(user_id)
        if user is None:
            return None
        return user_out_schema.dump(user)
