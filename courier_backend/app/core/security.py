"""
Password hashing helpers.

Secrets are stored as bcrypt hashes; comparison is delegated to bcrypt.
"""

import bcrypt

BCRYPT_ROUNDS = 10


def get_password_hash(password: str) -> str:
    """Hash a plain-text password with a fresh salt."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a plain-text password against a stored bcrypt hash.
    
    Returns False for malformed hashes instead of raising.
    """
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False
