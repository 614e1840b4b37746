"""
Password Utilities

Passwords are hashed with PBKDF2-SHA256 and stored as ``salt$hash``.
"""

import hashlib
import secrets
from typing import Optional, Tuple

ITERATIONS = 100000
SEPARATOR = "$"


def hash_password(password: str, salt: Optional[str] = None) -> Tuple[str, str]:
    """
    Hash a password using PBKDF2 with SHA-256.

    Args:
        password: The password to hash
        salt: Optional salt to use (if None, a new salt will be generated)

    Returns:
        A tuple of (hashed_password, salt)
    """
    if salt is None:
        salt = secrets.token_hex(16)

    key = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode(),
        salt.encode(),
        ITERATIONS,
        dklen=32
    )

    return key.hex(), salt


def verify_password(password: str, hashed_password: str, salt: str) -> bool:
    """
    Verify that a password matches a stored hash.

    Args:
        password: The password to verify
        hashed_password: The stored password hash
        salt: The salt used for the stored hash

    Returns:
        True if the password matches, False otherwise
    """
    calculated_hash, _ = hash_password(password, salt)
    return secrets.compare_digest(calculated_hash, hashed_password)


def encode_password(password: str) -> str:
    """Hash a password into the ``salt$hash`` column format."""
    hashed, salt = hash_password(password)
    return f"{salt}{SEPARATOR}{hashed}"


def check_password(password: str, stored: str) -> bool:
    """Check a password against a ``salt$hash`` value."""
    salt, separator, hashed = stored.partition(SEPARATOR)
    if not separator or not hashed:
        return False
    return verify_password(password, hashed, salt)
