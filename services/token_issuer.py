"""
Token issuance: sign an access token, mint its refresh token, persist the pair.
"""
from __future__ import annotations

import logging
from typing import Callable

from models.refresh_token import RefreshToken
from models.refresh_token_store import RefreshTokenStore, StoreError
from services.results import AuthResult
from utils.datetime_utils import now_utc
from utils.security import Signer, TokenConfig, RefreshTokenGenerator

logger = logging.getLogger(__name__)


class IssuanceFailed(Exception):
    """The refresh record could not be persisted; no token pair was issued."""


class TokenIssuer:
    def __init__(
        self,
        signer: Signer,
        store: RefreshTokenStore,
        config: TokenConfig,
        generate_refresh_token: Callable[[], str] | None = None,
        clock: Callable = now_utc,
    ):
        self.signer = signer
        self.store = store
        self.refresh_ttl = config.refresh_ttl
        self.generate_refresh_token = generate_refresh_token or RefreshTokenGenerator()
        self.clock = clock

    def issue(self, principal) -> AuthResult:
        """
        Return a fresh (access, refresh) pair for `principal`.
        The access token is only handed out once its refresh record is stored;
        persistence failures raise IssuanceFailed.
        """
        now = self.clock()
        access_token, jti = self.signer.sign(
            {
                "Id": str(principal.id),
                "email": principal.email,
                "sub": principal.email,
            },
            now=now,
        )

        record = RefreshToken(
            token=self.generate_refresh_token(),
            jwt_id=jti,
            user_id=str(principal.id),
            issued_at=now,
            expires_at=now + self.refresh_ttl,
            used=False,
            revoked=False,
        )
        try:
            self.store.create(record)
        except StoreError as exc:
            logger.exception("Refresh token persistence failed for user=%s", principal.id)
            raise IssuanceFailed("Could not issue token pair") from exc

        logger.info("Issued token pair user=%s jti=%s", principal.id, jti)
        return AuthResult.ok(access_token, record.token)
