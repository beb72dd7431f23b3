"""
Bearer-token authentication.

Access tokens are HS256 JWTs carrying ``userId``, ``email``, ``role`` and
``username`` claims. Explore endpoints treat a missing or invalid token as an
anonymous request; endpoints that need a user depend on ``require_user``.
"""
import logging
import time
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from jwt import InvalidTokenError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from clipfeed.config import settings
from clipfeed.database import get_session_factory
from clipfeed.models import User

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ("userId", "email", "role", "username")


@dataclass(frozen=True)
class AuthUser:
    user_id: str
    email: str
    role: str
    username: str


def encode_access(payload: dict, expires_in: int = 7 * 24 * 3600) -> str:
    """Encode an access token; used by the seed script and tests."""
    now = int(time.time())
    body = {"iat": now, "exp": now + expires_in}
    body.update(payload)
    return jwt.encode(body, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def extract_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization")
    if not header or not header.startswith("Bearer "):
        return None
    return header.split(" ", 1)[1].strip() or None


def decode_access(token: str) -> Optional[dict]:
    """Return the token claims, or None if the token is invalid or incomplete."""
    try:
        claims = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except InvalidTokenError:
        return None
    if not all(claims.get(k) for k in REQUIRED_CLAIMS):
        return None
    return claims


async def get_optional_user(
    request: Request,
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> Optional[AuthUser]:
    """
    FastAPI dependency: the authenticated user, or None for anonymous.

    The lookup uses its own short-lived session so its pooled connection is
    returned before the endpoint opens the sessions it needs.
    """
    token = extract_token(request)
    if not token:
        return None

    claims = decode_access(token)
    if claims is None:
        return None

    # The account must still exist and be active
    try:
        async with session_factory() as session:
            user = await session.get(User, claims["userId"])
    except SQLAlchemyError as exc:
        logger.error("Error verifying user %s: %s", claims["userId"], exc)
        return None
    if user is None or user.deactivated_at is not None:
        return None

    return AuthUser(
        user_id=claims["userId"],
        email=claims["email"],
        role=claims["role"],
        username=claims["username"],
    )


async def require_user(
    auth_user: Optional[AuthUser] = Depends(get_optional_user),
) -> AuthUser:
    if auth_user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return auth_user
