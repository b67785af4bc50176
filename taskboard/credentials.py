"""
Password credentials: salted PBKDF2-HMAC-SHA256.

A credential is a single base64 string holding salt (16 bytes) followed by
the derived key (32 bytes). The plaintext password is never stored.
"""
import base64
import binascii
import hashlib
import hmac
import secrets

SALT_BYTES = 16
KEY_BYTES = 32
DEFAULT_ITERATIONS = 100_000
HASH_NAME = "sha256"


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac(
        HASH_NAME, password.encode("utf-8"), salt, iterations, dklen=KEY_BYTES
    )


def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Derive a fresh credential. Same password twice gives two different blobs."""
    salt = secrets.token_bytes(SALT_BYTES)
    key = _derive(password, salt, iterations)
    return base64.b64encode(salt + key).decode("ascii")


def verify_password(
    password: str, stored: str, iterations: int = DEFAULT_ITERATIONS
) -> bool:
    """
    Check password against a stored credential.

    Malformed blobs (bad base64, wrong length, not a string) verify as False
    instead of raising.
    """
    try:
        combined = base64.b64decode(stored, validate=True)
    except (binascii.Error, TypeError, ValueError):
        return False
    if len(combined) != SALT_BYTES + KEY_BYTES:
        return False
    salt, expected = combined[:SALT_BYTES], combined[SALT_BYTES:]
    return hmac.compare_digest(_derive(password, salt, iterations), expected)
