"""
Refresh token persistence.

The store is the only component that touches refresh_tokens rows and the only
point of synchronisation between concurrent rotations: mark_used() is a single
conditional UPDATE, so exactly one caller can flip `used` for a given token.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.refresh_token import RefreshToken

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for refresh token store failures."""


class DuplicateToken(StoreError):
    pass


class AlreadyUsed(StoreError):
    pass


class StoreUnavailable(StoreError):
    pass


class RefreshTokenStore:
    def __init__(self, storage):
        self.storage = storage

    @property
    def session(self):
        return self.storage.get_session()

    def create(self, record: RefreshToken) -> RefreshToken:
        """Persist a new record; a colliding token string raises DuplicateToken."""
        try:
            self.storage.new(record)
            self.storage.save()
        except IntegrityError as exc:
            raise DuplicateToken("Refresh token already exists") from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailable("Could not persist refresh token") from exc
        return record

    def find_by_token(self, token: str) -> Optional[RefreshToken]:
        """Return the record for `token`, always reloaded from the database."""
        try:
            return (
                self.session.query(RefreshToken)
                .populate_existing()
                .filter(RefreshToken.token == token)
                .first()
            )
        except SQLAlchemyError as exc:
            self.storage.rollback()
            raise StoreUnavailable("Could not read refresh token") from exc

    def mark_used(self, token: str) -> None:
        """
        Compare-and-set `used` from false to true.
        Raises AlreadyUsed when no row was flipped, whether the token was
        already consumed or never existed.
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.token == token, RefreshToken.used.is_(False))
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.session.execute(stmt)
            self.storage.save()
        except SQLAlchemyError as exc:
            self.storage.rollback()
            raise StoreUnavailable("Could not update refresh token") from exc
        if result.rowcount != 1:
            raise AlreadyUsed("Refresh token has already been used")

    def revoke(self, token: str) -> bool:
        """Administrative revocation. Returns False if the token does not exist."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.token == token)
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.session.execute(stmt)
            self.storage.save()
        except SQLAlchemyError as exc:
            self.storage.rollback()
            raise StoreUnavailable("Could not revoke refresh token") from exc
        if result.rowcount == 1:
            logger.info("Refresh token revoked")
            return True
        return False
