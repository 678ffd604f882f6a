"""Password and one-time-code hashing.

Uses bcrypt for both. bcrypt includes a random salt automatically and
produces hashes starting with "$2b$". Inputs are truncated to 72 bytes
(bcrypt's limit).
"""

import secrets

import bcrypt

from devfolio.config import settings

# Plenty for a code that lives a few minutes; keeps registration fast.
_OTP_ROUNDS = 10


def hash_password(password: str) -> str:
    """Hash a password with bcrypt (work factor 12, ~100ms)."""
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash. Malformed hashes never match."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


def generate_otp(length: int | None = None) -> str:
    """A numeric one-time code, e.g. "048213"."""
    length = length or settings.otp_length
    return "".join(secrets.choice("0123456789") for _ in range(length))


def hash_otp(otp: str) -> str:
    salt = bcrypt.gensalt(rounds=_OTP_ROUNDS)
    return bcrypt.hashpw(otp.encode("utf-8"), salt).decode("utf-8")


def verify_otp(otp: str, otp_hash: str) -> bool:
    return verify_password(otp, otp_hash)
