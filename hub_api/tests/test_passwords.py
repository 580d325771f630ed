import hashlib

import bcrypt
import pytest

from hub_api.errors import InvalidEmailAndPassword
from hub_api.passwords import (
    hash_password,
    is_legacy_hash,
    needs_rehash,
    password_with_salt,
    validate_credentials,
    verify_password,
)


def test_legacy_hash_is_sha256_of_salt_then_password():
    expected = hashlib.sha256(b"pepperhunter22").hexdigest()
    assert password_with_salt("pepper", "hunter22") == expected
    assert hash_password("hunter22", salt="pepper") == expected


def test_verify_legacy_hash():
    stored = hash_password("hunter22", salt="pepper")
    assert verify_password("hunter22", stored, salt="pepper")
    assert not verify_password("hunter23", stored, salt="pepper")
    assert not verify_password("hunter22", stored, salt="other")


def test_bcrypt_hash_round_trip():
    stored = hash_password("hunter22", salt="pepper", scheme="bcrypt")
    assert stored.startswith("$2b$12$")
    assert not is_legacy_hash(stored)
    assert bcrypt.checkpw(b"hunter22", stored.encode("utf-8"))
    assert verify_password("hunter22", stored, salt="ignored")
    assert not verify_password("hunter23", stored, salt="ignored")


def test_bcrypt_hashes_are_salted_per_password():
    first = hash_password("hunter22", salt="pepper", scheme="bcrypt")
    second = hash_password("hunter22", salt="pepper", scheme="bcrypt")
    assert first != second


def test_malformed_bcrypt_hash_does_not_verify():
    assert not verify_password("hunter22", "$2b$12$broken", salt="pepper")


def test_bcrypt_rejects_passwords_over_72_bytes():
    with pytest.raises(InvalidEmailAndPassword) as excinfo:
        hash_password("x" * 73, salt="pepper", scheme="bcrypt")
    assert "at most 72 bytes" in excinfo.value.reason
    stored = hash_password("x" * 72, salt="pepper", scheme="bcrypt")
    assert verify_password("x" * 72, stored, salt="pepper")
    assert not verify_password("x" * 73, stored, salt="pepper")


def test_needs_rehash_only_when_upgrading_legacy():
    legacy = hash_password("hunter22", salt="pepper")
    modern = hash_password("hunter22", salt="pepper", scheme="bcrypt")
    assert needs_rehash(legacy, "bcrypt", "hunter22")
    assert not needs_rehash(modern, "bcrypt", "hunter22")
    assert not needs_rehash(legacy, "legacy", "hunter22")
    assert not needs_rehash(legacy, "bcrypt", "x" * 73)


@pytest.mark.parametrize(
    "email, password, fragment",
    [
        ("", "long-enough", "email is empty"),
        ("a@example.com", "short", "at least 8"),
        ("a@example.com", "", "at least 8"),
    ],
)
def test_validate_credentials_rejects(email, password, fragment):
    with pytest.raises(InvalidEmailAndPassword) as excinfo:
        validate_credentials(email, password)
    assert fragment in excinfo.value.reason


def test_validate_credentials_accepts_exactly_eight_characters():
    assert validate_credentials("a@example.com", "12345678") == ("a@example.com", "12345678")
