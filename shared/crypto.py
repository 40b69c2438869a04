"""
Cryptographic helpers — password hashing and token hashing.

Uses argon2 for passwords (via argon2-cffi) and SHA-256 for OTP codes and
password-reset tokens, which are stored only as digests. Accounts created by
the previous service still carry bcrypt hashes; those verify through the
bcrypt library and are reported by needs_rehash() so sign-in can upgrade them.
"""

from __future__ import annotations

import hashlib
import hmac

import bcrypt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_password_hasher = PasswordHasher()

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")

# Target for verify_dummy_password()
_DUMMY_PASSWORD_HASH = _password_hasher.hash("placeholder-password")


def hash_password(plain_password: str) -> str:
    """Hash *plain_password* with argon2id.

    Returns:
        Argon2 hash string (includes algorithm parameters and salt).
    """
    return _password_hasher.hash(plain_password)


def _is_bcrypt(password_hash: str) -> bool:
    return password_hash.startswith(_BCRYPT_PREFIXES)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify *plain_password* against an argon2 or legacy bcrypt hash.

    Returns:
        ``True`` if the password matches, ``False`` for a mismatch or a
        stored value that is not a recognised hash.
    """
    if _is_bcrypt(password_hash):
        try:
            return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False
    try:
        return _password_hasher.verify(password_hash, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def verify_dummy_password(plain_password: str) -> None:
    """Spend one argon2 verification on a throwaway hash."""
    verify_password(plain_password, _DUMMY_PASSWORD_HASH)


def needs_rehash(password_hash: str) -> bool:
    """True for bcrypt hashes and argon2 hashes with outdated parameters."""
    if _is_bcrypt(password_hash):
        return True
    try:
        return _password_hasher.check_needs_rehash(password_hash)
    except InvalidHashError:
        return True


def hash_token(token: str) -> str:
    """Return the hex-encoded SHA-256 digest of *token*."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_matches(token: str, token_hash: str) -> bool:
    """Constant-time comparison of *token* against a stored digest."""
    return hmac.compare_digest(hash_token(token), token_hash)
