"""
Identity store: principals and their credentials.

Passwords are hashed with argon2 (utils.security). create_principal() applies
the password policy and uniqueness rules and reports every violation as a
human-readable message instead of raising.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.refresh_token_store import StoreUnavailable
from models.user import User
from utils.security import hash_password, verify_password as _verify_hash

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 6


def password_policy_errors(password: str) -> List[str]:
    """Return the list of policy rules `password` violates."""
    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Passwords must be at least {PASSWORD_MIN_LENGTH} characters.")
    if all(ch.isalnum() for ch in password):
        errors.append("Passwords must have at least one non alphanumeric character.")
    if not any(ch.isdigit() for ch in password):
        errors.append("Passwords must have at least one digit ('0'-'9').")
    if not any(ch.islower() for ch in password):
        errors.append("Passwords must have at least one lowercase ('a'-'z').")
    if not any(ch.isupper() for ch in password):
        errors.append("Passwords must have at least one uppercase ('A'-'Z').")
    return errors


class IdentityStore:
    def __init__(self, storage):
        self.storage = storage

    @property
    def session(self):
        return self.storage.get_session()

    def _first(self, *criteria) -> Optional[User]:
        try:
            return self.session.query(User).filter(*criteria).first()
        except SQLAlchemyError as exc:
            self.storage.rollback()
            raise StoreUnavailable("Could not read principal") from exc

    def find_by_email(self, email: str) -> Optional[User]:
        return self._first(User.email == email.strip().lower())

    def find_by_id(self, user_id: str) -> Optional[User]:
        try:
            return self.storage.get(User, user_id)
        except SQLAlchemyError as exc:
            self.storage.rollback()
            raise StoreUnavailable("Could not read principal") from exc

    def find_by_username(self, username: str) -> Optional[User]:
        return self._first(User.username == username)

    def verify_password(self, principal: User, plaintext: str) -> bool:
        return _verify_hash(plaintext, principal.password_hash)

    def create_principal(self, email: str, username: str, password: str) -> Tuple[Optional[User], List[str]]:
        """Create a user, or return (None, errors) describing why not."""
        email = email.strip().lower()
        errors = password_policy_errors(password)
        if self.find_by_username(username):
            errors.append(f"Username '{username}' is already taken.")
        if self.find_by_email(email):
            errors.append(f"Email '{email}' is already taken.")
        if errors:
            return None, errors

        user = User(email=email, username=username, password_hash=hash_password(password))
        try:
            self.storage.new(user)
            self.storage.save()
        except IntegrityError:
            # lost a race against a concurrent registration
            logger.warning("Concurrent registration for %s", email)
            return None, [f"Email '{email}' or username '{username}' is already taken."]
        except SQLAlchemyError as exc:
            raise StoreUnavailable("Could not persist principal") from exc

        logger.info("Principal created id=%s", user.id)
        return user, []
