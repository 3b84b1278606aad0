"""
Password hashing and verification using bcrypt.
"""

import bcrypt

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt."""
    # bcrypt has a 72-byte limit, truncate if needed
    password_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def is_password_hashed(stored: str) -> bool:
    """True if the stored credential looks like a bcrypt hash."""
    return bool(stored) and stored.startswith(BCRYPT_PREFIXES)


def verify_password(plain_password: str, stored: str) -> bool:
    """
    Verify a password against a stored credential.

    Hashed credentials go through bcrypt; anything else is a legacy
    plaintext credential and is compared directly.
    """
    if not stored:
        return False
    if not is_password_hashed(stored):
        return plain_password == stored
    password_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(password_bytes, stored.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False
