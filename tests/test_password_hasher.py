import pytest

from app.services.exceptions import Invalid
from app.services.password_hasher import PasswordHasher

PLAINTEXTS = ["correct horse battery staple", "p@ssw0rd!", "ünïcødé-密码", " leading-space"]


@pytest.fixture()
def hasher(config):
    return PasswordHasher(config)


@pytest.mark.parametrize("plaintext", PLAINTEXTS)
def test_hash_verifies_original_and_rejects_others(hasher, plaintext):
    hashed = hasher.hash(plaintext)

    assert hashed != plaintext
    assert hashed.startswith("$2b$04$")
    assert hasher.verify(plaintext, hashed) is True
    assert hasher.verify(plaintext + "x", hashed) is False
    assert hasher.verify(plaintext.upper() if plaintext.upper() != plaintext else "other", hashed) is False


def test_hash_is_salted(hasher):
    assert hasher.hash("same-password") != hasher.hash("same-password")


def test_verify_handles_missing_or_malformed_hash(hasher):
    assert hasher.verify("anything", None) is False
    assert hasher.verify("anything", "not-a-bcrypt-hash") is False


def test_hash_rejects_passwords_longer_than_bcrypt_limit(hasher):
    with pytest.raises(Invalid):
        hasher.hash("a" * 73)
