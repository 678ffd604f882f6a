"""FastAPI auth dependencies.

Used as Depends() in route handlers to extract and validate the
current user from the request. The accessToken cookie is tried first,
then an Authorization: Bearer header; the first token that verifies wins.
"""

import uuid
from typing import Optional

import structlog
from fastapi import Cookie, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from devfolio.auth.jwt import ACCESS, TokenError, verify_token
from devfolio.db.engine import get_db
from devfolio.db.models import User
from devfolio.errors import ApiError

logger = structlog.get_logger()

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def extract_access_tokens(
    cookie_token: Optional[str], authorization: Optional[str]
) -> list[str]:
    """Candidate tokens in the order they are tried: cookie, then Bearer header."""
    tokens = []
    if cookie_token:
        tokens.append(cookie_token)
    if authorization and authorization.startswith("Bearer "):
        bearer = authorization[7:].strip()
        if bearer and bearer not in tokens:
            tokens.append(bearer)
    return tokens


async def get_current_user(
    access_token: Optional[str] = Cookie(None, alias=ACCESS_COOKIE),
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the authenticated user (401 if missing, invalid or expired)."""
    tokens = extract_access_tokens(access_token, authorization)
    if not tokens:
        raise ApiError.unauthorized("Unauthorized request")

    # A stale cookie must not shadow a valid header.
    for token in tokens:
        try:
            payload = verify_token(token, ACCESS)
            user_id = uuid.UUID(payload["sub"])
        except (TokenError, ValueError) as e:
            logger.info("devfolio.access_token_rejected", reason=str(e))
            continue

        user = await db.get(User, user_id)
        if user is not None:
            return user

    raise ApiError.unauthorized("Invalid access token")
