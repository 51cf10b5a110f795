"""
Shared fixtures: a file-backed SQLite store per test, a controllable clock,
the token engine components and a Flask test client.
"""
from datetime import timedelta

import pytest

from api import create_app
from models import DBStorage, RefreshTokenStore, IdentityStore
from services import TokenIssuer, TokenRotator
from utils.datetime_utils import now_utc
from utils.security import Signer, TokenConfig

TEST_SECRET = "test-secret-with-at-least-thirty-two-bytes"


class FrozenClock:
    """A clock that only moves when told to."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def storage(tmp_path):
    db = DBStorage(f"sqlite:///{tmp_path / 'tokens.db'}", timeout=5)
    db.reload()
    yield db
    db.dispose()


@pytest.fixture
def token_config():
    return TokenConfig(
        secret=TEST_SECRET,
        access_ttl=timedelta(hours=1),
        refresh_ttl=timedelta(days=182),
    )


@pytest.fixture
def clock():
    # a day in the past keeps issued-at claims behind the wall clock
    return FrozenClock(now_utc().replace(microsecond=0) - timedelta(days=1))


@pytest.fixture
def signer(token_config):
    return Signer(token_config)


@pytest.fixture
def refresh_store(storage):
    return RefreshTokenStore(storage)


@pytest.fixture
def identity(storage):
    return IdentityStore(storage)


@pytest.fixture
def issuer(signer, refresh_store, token_config, clock):
    return TokenIssuer(signer, refresh_store, token_config, clock=clock)


@pytest.fixture
def rotator(signer, refresh_store, issuer, identity, clock):
    return TokenRotator(signer, refresh_store, issuer, find_principal=identity.find_by_id, clock=clock)


@pytest.fixture
def alice(identity):
    user, errors = identity.create_principal("alice@example.com", "alice", "Secret123!")
    assert errors == []
    return user


@pytest.fixture
def make_app(tmp_path):
    apps = []

    def _make(**overrides):
        config = {"DATABASE_URL": f"sqlite:///{tmp_path / f'api{len(apps)}.db'}"}
        config.update(overrides)
        app = create_app("testing", config)
        apps.append(app)
        return app

    yield _make
    for app in apps:
        app.extensions["storage"].dispose()


@pytest.fixture
def client(make_app):
    # access tokens expire the moment they are issued, so they can be rotated at once
    app = make_app(ACCESS_TOKEN_EXPIRES=timedelta(0))
    return app.test_client()
