from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

# Argon2 hash strings encode parameters + salt, so the hasher can be
# retuned later and old hashes still verify (and get upgraded on login).
_ph = PasswordHasher()

# Verified against when the email is unknown so that a miss costs the same
# as a wrong password.
_DUMMY_HASH = _ph.hash("not-a-real-password")


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


def burn_verification(plain_password: str) -> None:
    verify_password(plain_password or "x", _DUMMY_HASH)


def needs_rehash(password_hash: str) -> bool:
    try:
        return _ph.check_needs_rehash(password_hash)
    except InvalidHash:
        return False
