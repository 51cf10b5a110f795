"""
Tests for token pair issuance.
"""
from datetime import timedelta

import pytest

from models import RefreshToken
from services import IssuanceFailed, TokenIssuer
from utils.datetime_utils import to_utc


def test_issue_returns_pair_and_persists_record(issuer, refresh_store, signer, alice, clock):
    result = issuer.issue(alice)

    assert result.success is True
    assert result.errors == []
    claims = signer.validate(result.access_token)
    assert claims["Id"] == alice.id
    assert claims["email"] == "alice@example.com"
    assert claims["sub"] == "alice@example.com"

    record = refresh_store.find_by_token(result.refresh_token)
    assert record.jwt_id == claims["jti"]
    assert record.user_id == alice.id
    assert to_utc(record.issued_at) == clock()
    assert to_utc(record.expires_at) == clock() + timedelta(days=182)
    assert record.used is False
    assert record.revoked is False


def test_refresh_token_shape(issuer, alice):
    result = issuer.issue(alice)
    # 35 random characters followed by a UUID
    assert len(result.refresh_token) == 35 + 36


def test_every_issue_creates_a_new_record(issuer, storage, alice):
    first = issuer.issue(alice)
    second = issuer.issue(alice)

    assert first.refresh_token != second.refresh_token
    assert storage.count(RefreshToken) == 2


def test_persistence_failure_returns_no_tokens(signer, refresh_store, token_config, storage, alice, clock):
    issuer = TokenIssuer(
        signer,
        refresh_store,
        token_config,
        generate_refresh_token=lambda: "SAME-TOKEN",
        clock=clock,
    )
    issuer.issue(alice)
    storage.close()

    with pytest.raises(IssuanceFailed):
        issuer.issue(alice)
    assert storage.count(RefreshToken) == 1
