"""
Redis-backed user storage.

Keys:
    user:{id}            JSON user record
    user:email:{email}   id of the user owning that email
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..errors import DuplicateEmail, NotFound
from .kv import KeyValueStore
from .models import User, utcnow
from .passwords import hash_password, is_password_hashed, verify_password

logger = logging.getLogger(__name__)

# Keys that PUT /auth/user may not touch
PROTECTED_USER_FIELDS = frozenset(
    {"id", "email", "password", "passwordHash", "password_hash", "createdAt", "created_at"}
)


def user_key(user_id: str) -> str:
    return f"user:{user_id}"


def email_key(email: str) -> str:
    return f"user:email:{normalize_email(email)}"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class UserStore:
    def __init__(self, store: KeyValueStore, *, bcrypt_rounds: int = 12):
        self.store = store
        self.bcrypt_rounds = bcrypt_rounds

    def hash(self, password: str) -> str:
        return hash_password(password, rounds=self.bcrypt_rounds)

    def create(self, email: str, name: str, password_hash: str) -> User:
        """
        Create a user.

        The email index is checked and then claimed with an only-if-absent
        write, so a concurrent registration for the same address loses the
        claim instead of overwriting it.

        Raises:
            DuplicateEmail: if the email is already registered.
        """
        if self.store.get(email_key(email)):
            raise DuplicateEmail()

        user = User(email=normalize_email(email), name=name.strip(), password_hash=password_hash)
        if not self.store.set(email_key(email), user.id, only_if_absent=True):
            raise DuplicateEmail()

        self.store.set_json(user_key(user.id), user.to_record())
        return user

    def find_by_id(self, user_id: str) -> Optional[User]:
        record = self.store.get_json(user_key(user_id))
        if not record:
            return None
        return User.model_validate(record)

    def find_by_email(self, email: str) -> Optional[User]:
        user_id = self.store.get(email_key(email))
        if not user_id:
            return None
        return self.find_by_id(user_id)

    def update(self, user_id: str, partial: Dict[str, Any]) -> User:
        """Merge profile fields into the record. Email and password are left alone."""
        record = self.store.get_json(user_key(user_id))
        if not record:
            raise NotFound("User not found")

        changes = {k: v for k, v in partial.items() if k not in PROTECTED_USER_FIELDS}
        merged = {**record, **changes, "updatedAt": utcnow().isoformat()}
        user = User.model_validate(merged)
        self.store.set_json(user_key(user_id), user.to_record())
        return user

    def set_password(self, user_id: str, password_hash: str) -> None:
        user = self.find_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        user.password_hash = password_hash
        user.updated_at = utcnow()
        self.store.set_json(user_key(user_id), user.to_record())

    def check_password(self, user: User, password: str) -> bool:
        """
        Check ``password`` against the user's stored credential.

        A legacy plaintext credential that matches is rewritten as a bcrypt
        hash before returning.
        """
        if not verify_password(password, user.password_hash):
            return False

        if not is_password_hashed(user.password_hash):
            new_hash = self.hash(password)
            self.set_password(user.id, new_hash)
            user.password_hash = new_hash
            logger.info("Migrated plaintext password to hashed for user %s", user.id)
        return True

    def authenticate(self, email: str, password: str) -> Optional[User]:
        user = self.find_by_email(email)
        if user is None:
            return None
        if not self.check_password(user, password):
            return None
        return user
