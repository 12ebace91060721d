"""
Password hashing for stored user credentials.

Token issuance and verification live outside this package; only the
stored hash is produced here.
"""

import hashlib
import secrets

PBKDF2_ITERATIONS = 100_000


def hash_password(password: str) -> str:
    """Hash a password with a random salt. Returns ``salt:hexdigest``."""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS
    )
    return f"{salt}:{digest.hex()}"


def verify_password(password: str, hashed: str) -> bool:
    """Check a password against a ``salt:hexdigest`` hash."""
    try:
        salt, stored = hashed.split(":")
    except (ValueError, AttributeError):
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS
    )
    return secrets.compare_digest(stored, digest.hex())
