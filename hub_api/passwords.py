import hashlib
import hmac
from typing import Tuple

import bcrypt

from hub_api.errors import InvalidEmailAndPassword

MIN_PASSWORD_LENGTH = 8
# bcrypt only reads the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72
BCRYPT_ROUNDS = 12
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def validate_credentials(email: str, password: str) -> Tuple[str, str]:
    if not email:
        raise InvalidEmailAndPassword("email is empty")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidEmailAndPassword(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    return email, password


def password_with_salt(salt: str, password: str) -> str:
    """Legacy hash: sha256 over the process-wide salt followed by the password."""
    return hashlib.sha256((salt + password).encode("utf-8")).hexdigest()


def fits_bcrypt(password: str) -> bool:
    return len(password.encode("utf-8")) <= BCRYPT_MAX_PASSWORD_BYTES


def is_legacy_hash(stored: str) -> bool:
    return not stored.startswith(BCRYPT_PREFIXES)


def hash_password(password: str, *, salt: str, scheme: str = "legacy") -> str:
    if scheme == "bcrypt":
        if not fits_bcrypt(password):
            raise InvalidEmailAndPassword(f"password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
        return hashed.decode("utf-8")
    return password_with_salt(salt, password)


def verify_password(password: str, stored: str, *, salt: str) -> bool:
    if is_legacy_hash(stored):
        return hmac.compare_digest(password_with_salt(salt, password), stored)
    if not fits_bcrypt(password):
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored.encode("utf-8"))
    except ValueError:
        return False


def needs_rehash(stored: str, scheme: str, password: str = "") -> bool:
    """A legacy hash is upgraded on login once bcrypt is the configured scheme."""
    return scheme == "bcrypt" and is_legacy_hash(stored) and fits_bcrypt(password)
