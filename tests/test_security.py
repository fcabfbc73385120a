import pytest

from services.errors import CredentialError
from utils.security import CredentialHasher, digest_token


@pytest.fixture
def hasher():
    return CredentialHasher(time_cost=1, memory_cost=8, parallelism=1)


def test_hash_is_salted_and_verifies(hasher):
    first, second = hasher.hash("s3cret-pass"), hasher.hash("s3cret-pass")
    assert first != second
    assert hasher.verify("s3cret-pass", first)
    assert hasher.verify("s3cret-pass", second)


def test_wrong_password_returns_false(hasher):
    assert hasher.verify("wrong", hasher.hash("s3cret-pass")) is False


def test_malformed_hash_raises_credential_error(hasher):
    with pytest.raises(CredentialError):
        hasher.verify("anything", "not-an-argon2-hash")


def test_token_digest_is_stable_and_hides_token():
    token = "header.payload.signature"
    assert digest_token(token) == digest_token(token)
    assert len(digest_token(token)) == 64
    assert token not in digest_token(token)


def test_needs_rehash_tracks_parameters(hasher):
    current = hasher.hash("s3cret-pass")
    older = CredentialHasher(time_cost=2, memory_cost=16, parallelism=1).hash("s3cret-pass")
    assert hasher.needs_rehash(current) is False
    assert hasher.needs_rehash(older) is True
