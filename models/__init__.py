from models.base_model import Base, BaseModel
from models.user import User
from models.refresh_token import RefreshToken
from models.db_storage import DBStorage
from models.refresh_token_store import (
    RefreshTokenStore,
    StoreError,
    DuplicateToken,
    AlreadyUsed,
    StoreUnavailable,
)
from models.identity_store import IdentityStore
