"""
Outcome values shared by the issuer, the rotator and the HTTP layer.

Expected failures are ErrorKind values on a failed AuthResult, never
exceptions. Each kind belongs to a category that decides how much detail the
caller gets to see.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ErrorCategory(str, Enum):
    VALIDATION = "VALIDATION"
    AUTHENTICATION = "AUTHENTICATION"
    TOKEN_STATE = "TOKEN_STATE"
    INFRASTRUCTURE = "INFRASTRUCTURE"


class ErrorKind(str, Enum):
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    EMAIL_IN_USE = "EMAIL_IN_USE"
    PRINCIPAL_REJECTED = "PRINCIPAL_REJECTED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_TOKEN = "INVALID_TOKEN"
    UNKNOWN_REFRESH_TOKEN = "UNKNOWN_REFRESH_TOKEN"
    TOKEN_PAIR_MISMATCH = "TOKEN_PAIR_MISMATCH"
    TOKEN_NOT_YET_EXPIRED = "TOKEN_NOT_YET_EXPIRED"
    REFRESH_TOKEN_REUSED = "REFRESH_TOKEN_REUSED"
    REFRESH_TOKEN_REVOKED = "REFRESH_TOKEN_REVOKED"
    REFRESH_TOKEN_EXPIRED = "REFRESH_TOKEN_EXPIRED"
    ISSUANCE_FAILED = "ISSUANCE_FAILED"
    ROTATION_FAILED = "ROTATION_FAILED"

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self]

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_CATEGORIES = {
    ErrorKind.INVALID_PAYLOAD: ErrorCategory.VALIDATION,
    ErrorKind.EMAIL_IN_USE: ErrorCategory.VALIDATION,
    ErrorKind.PRINCIPAL_REJECTED: ErrorCategory.VALIDATION,
    ErrorKind.INVALID_CREDENTIALS: ErrorCategory.AUTHENTICATION,
    ErrorKind.INVALID_TOKEN: ErrorCategory.AUTHENTICATION,
    ErrorKind.UNKNOWN_REFRESH_TOKEN: ErrorCategory.AUTHENTICATION,
    ErrorKind.TOKEN_PAIR_MISMATCH: ErrorCategory.AUTHENTICATION,
    ErrorKind.TOKEN_NOT_YET_EXPIRED: ErrorCategory.TOKEN_STATE,
    ErrorKind.REFRESH_TOKEN_REUSED: ErrorCategory.TOKEN_STATE,
    ErrorKind.REFRESH_TOKEN_REVOKED: ErrorCategory.TOKEN_STATE,
    ErrorKind.REFRESH_TOKEN_EXPIRED: ErrorCategory.TOKEN_STATE,
    ErrorKind.ISSUANCE_FAILED: ErrorCategory.INFRASTRUCTURE,
    ErrorKind.ROTATION_FAILED: ErrorCategory.INFRASTRUCTURE,
}

# Authentication failures share one message so callers cannot tell an unknown
# refresh token from a mismatched pair.
_MESSAGES = {
    ErrorKind.INVALID_PAYLOAD: "Invalid payload",
    ErrorKind.EMAIL_IN_USE: "Email already in use",
    ErrorKind.PRINCIPAL_REJECTED: "Invalid registration request",
    ErrorKind.INVALID_CREDENTIALS: "Invalid login request",
    ErrorKind.INVALID_TOKEN: "Invalid tokens",
    ErrorKind.UNKNOWN_REFRESH_TOKEN: "Invalid tokens",
    ErrorKind.TOKEN_PAIR_MISMATCH: "Invalid tokens",
    ErrorKind.TOKEN_NOT_YET_EXPIRED: "Token has not yet expired",
    ErrorKind.REFRESH_TOKEN_REUSED: "Token has been used",
    ErrorKind.REFRESH_TOKEN_REVOKED: "Token has been revoked",
    ErrorKind.REFRESH_TOKEN_EXPIRED: "Token has expired, please re-login",
    ErrorKind.ISSUANCE_FAILED: "Something went wrong",
    ErrorKind.ROTATION_FAILED: "Something went wrong",
}


@dataclass
class AuthResult:
    success: bool
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, access_token: str, refresh_token: str) -> "AuthResult":
        return cls(success=True, access_token=access_token, refresh_token=refresh_token)

    @classmethod
    def failure(cls, kind: ErrorKind, errors: Optional[List[str]] = None) -> "AuthResult":
        """A failed result never carries tokens. Field-level `errors` are only
        kept for validation failures; every other category gets its fixed message."""
        if errors and kind.category is ErrorCategory.VALIDATION:
            messages = list(errors)
        else:
            messages = [kind.message]
        return cls(success=False, errors=messages, error_kind=kind)
