"""JWT token creation and verification.

- Access token: short-lived (15 min), carries id, email and username
- Refresh token: long-lived (10 days), carries the user id only

Each kind is signed with its own secret, so one can never be replayed as
the other. A random jti makes every issued token unique, even two issued
for the same user within the same second.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from devfolio.config import settings

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def _secret(token_type: str) -> str:
    if token_type == ACCESS:
        return settings.access_token_secret
    if token_type == REFRESH:
        return settings.refresh_token_secret
    raise TokenError(f"Unknown token type: {token_type}")


def create_access_token(
    user_id: str,
    email: str,
    username: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {
        "sub": user_id,
        "email": email,
        "username": username,
        "type": ACCESS,
        "jti": uuid.uuid4().hex,
        "exp": expires,
        "iat": now,
    }
    return jwt.encode(payload, _secret(ACCESS), algorithm=settings.jwt_algorithm)


def create_refresh_token(
    user_id: str,
    expires_days: Optional[int] = None,
) -> str:
    """Create a JWT refresh token."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(
        days=expires_days or settings.refresh_token_expire_days
    )
    payload = {
        "sub": user_id,
        "type": REFRESH,
        "jti": uuid.uuid4().hex,
        "exp": expires,
        "iat": now,
    }
    return jwt.encode(payload, _secret(REFRESH), algorithm=settings.jwt_algorithm)


def verify_token(token: str, token_type: str = ACCESS) -> dict:
    """Verify and decode a JWT token of the given type.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, _secret(token_type), algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    if payload.get("type") != token_type:
        raise TokenError(f"Not an {token_type} token")
    if not payload.get("sub"):
        raise TokenError("Token has no subject")
    return payload
