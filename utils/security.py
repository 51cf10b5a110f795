"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Access token signing/validation via PyJWT (HS256)
- Opaque refresh token strings from a single process-wide CSPRNG
"""
from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Any, Mapping, Tuple

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, InvalidHashError

from utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

ph = PasswordHasher()

REFRESH_TOKEN_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
REFRESH_TOKEN_RANDOM_LENGTH = 35
MIN_SECRET_BYTES = 32


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


class TokenValidationError(Exception):
    """Base class for every reason an access token is rejected structurally."""


class SignatureInvalid(TokenValidationError):
    pass


class AlgorithmMismatch(TokenValidationError):
    pass


class MalformedToken(TokenValidationError):
    pass


@dataclass(frozen=True)
class TokenConfig:
    """Options consumed by the token engine: {secret, access_ttl, refresh_ttl}."""

    secret: str
    access_ttl: timedelta = timedelta(hours=1)
    refresh_ttl: timedelta = timedelta(days=182)
    algorithm: str = "HS256"

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "TokenConfig":
        """Build from a Flask config (or any mapping using the same keys)."""
        secret = config["JWT_SECRET"]
        if len(secret.encode("utf-8")) < MIN_SECRET_BYTES:
            logger.warning("JWT_SECRET is shorter than %d bytes; set a stronger secret", MIN_SECRET_BYTES)
        return cls(
            secret=secret,
            access_ttl=config.get("ACCESS_TOKEN_EXPIRES", cls.access_ttl),
            refresh_ttl=config.get("REFRESH_TOKEN_EXPIRES", cls.refresh_ttl),
            algorithm=config.get("JWT_ALGORITHM", cls.algorithm),
        )


class Signer:
    """
    Wraps the symmetric secret and produces/validates signed access tokens.

    validate() checks the signature and the algorithm but deliberately leaves
    the expiry alone: callers compare `exp` themselves, so an expired but
    authentic access token can still be presented for rotation.
    """

    REQUIRED_CLAIMS = ("exp", "jti", "sub")

    def __init__(self, config: TokenConfig):
        self._secret = config.secret
        self.algorithm = config.algorithm
        self.access_ttl = config.access_ttl

    def sign(self, claims: Dict[str, Any], now: datetime | None = None) -> Tuple[str, str]:
        """Sign claims with a fresh jti; return (compact token, jti)."""
        now = now or now_utc()
        jti = generate_jti()
        payload = dict(claims)
        payload.update(
            {
                "jti": jti,
                "iat": int(now.timestamp()),
                "exp": int((now + self.access_ttl).timestamp()),
            }
        )
        token = jwt.encode(payload, self._secret, algorithm=self.algorithm)
        return token, jti

    def validate(self, token: str) -> Dict[str, Any]:
        """
        Verify a compact token and return its claims.
        Raises AlgorithmMismatch, SignatureInvalid or MalformedToken.
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as exc:
            raise MalformedToken(f"Invalid token: {exc}") from exc

        alg = header.get("alg")
        if not isinstance(alg, str) or alg.upper() != self.algorithm.upper():
            raise AlgorithmMismatch(f"Unexpected signing algorithm: {alg!r}")

        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": list(self.REQUIRED_CLAIMS),
                },
            )
        except jwt.InvalidSignatureError as exc:
            raise SignatureInvalid("Signature verification failed") from exc
        except jwt.InvalidAlgorithmError as exc:
            raise AlgorithmMismatch(str(exc)) from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedToken(f"Invalid token: {exc}") from exc


class RefreshTokenGenerator:
    """
    Opaque refresh token strings: 35 random characters from A-Z0-9 followed
    by a UUID4 (about 180 + 122 bits of entropy).
    The random source is created once per process and injected, never per call.
    """

    def __init__(self, rng: secrets.SystemRandom | None = None,
                 length: int = REFRESH_TOKEN_RANDOM_LENGTH):
        self._rng = rng or secrets.SystemRandom()
        self._length = length

    def __call__(self) -> str:
        prefix = "".join(self._rng.choice(REFRESH_TOKEN_ALPHABET) for _ in range(self._length))
        return prefix + str(uuid.uuid4())
