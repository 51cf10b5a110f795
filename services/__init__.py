from services.results import AuthResult, ErrorKind, ErrorCategory
from services.token_issuer import TokenIssuer, IssuanceFailed
from services.token_rotator import TokenRotator
