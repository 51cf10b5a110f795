"""
Refresh token rotation.

A presented (access token, refresh token) pair goes through, in order:

1. structural validation of the access token (signature and algorithm)
2. access token expiry: rotation is only allowed once it has expired
3. refresh token lookup
4. binding: the stored jwt_id must equal the access token's jti
5. refresh token state: used, revoked, expired (expires_at is inclusive)
6. consume: compare-and-set of the `used` flag
7. reissue for the owning principal

Binding is checked before state, so the state of a refresh token is only
reported to a caller presenting the access token it was issued with.
Every step either advances or ends with a failed AuthResult; none raise.
"""
from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from models.refresh_token_store import RefreshTokenStore, AlreadyUsed, StoreError
from services.results import AuthResult, ErrorKind
from services.token_issuer import TokenIssuer, IssuanceFailed
from utils.datetime_utils import now_utc, from_timestamp
from utils.security import Signer, TokenValidationError

logger = logging.getLogger(__name__)


class TokenRotator:
    def __init__(
        self,
        signer: Signer,
        store: RefreshTokenStore,
        issuer: TokenIssuer,
        find_principal: Callable,
        clock: Callable = now_utc,
    ):
        self.signer = signer
        self.store = store
        self.issuer = issuer
        self.find_principal = find_principal
        self.clock = clock

    def _reject(self, kind: ErrorKind) -> AuthResult:
        logger.warning("Rotation rejected: %s", kind.value)
        return AuthResult.failure(kind)

    def rotate(self, access_token: str, refresh_token: str) -> AuthResult:
        try:
            return self._rotate(access_token, refresh_token)
        except (StoreError, IssuanceFailed, SQLAlchemyError):
            logger.exception("Rotation failed")
            return AuthResult.failure(ErrorKind.ROTATION_FAILED)

    def _rotate(self, access_token: str, refresh_token: str) -> AuthResult:
        try:
            claims = self.signer.validate(access_token)
            expires = from_timestamp(claims["exp"])
        except (TokenValidationError, TypeError, ValueError, OverflowError):
            return self._reject(ErrorKind.INVALID_TOKEN)

        now = self.clock()
        if expires > now:
            return self._reject(ErrorKind.TOKEN_NOT_YET_EXPIRED)

        stored = self.store.find_by_token(refresh_token)
        if stored is None:
            return self._reject(ErrorKind.UNKNOWN_REFRESH_TOKEN)

        if stored.jwt_id != claims["jti"]:
            return self._reject(ErrorKind.TOKEN_PAIR_MISMATCH)

        if stored.used:
            return self._reject(ErrorKind.REFRESH_TOKEN_REUSED)
        if stored.revoked:
            return self._reject(ErrorKind.REFRESH_TOKEN_REVOKED)
        if stored.is_expired(now):
            return self._reject(ErrorKind.REFRESH_TOKEN_EXPIRED)

        try:
            self.store.mark_used(refresh_token)
        except AlreadyUsed:
            # lost the race against a concurrent rotation of the same token
            return self._reject(ErrorKind.REFRESH_TOKEN_REUSED)

        principal = self.find_principal(stored.user_id)
        if principal is None:
            return self._reject(ErrorKind.INVALID_TOKEN)

        result = self.issuer.issue(principal)
        logger.info("Rotated refresh token user=%s old_jti=%s", stored.user_id, stored.jwt_id)
        return result
