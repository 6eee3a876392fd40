"""Caller identity from the hosted auth provider's JWTs."""

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

load_dotenv()

logger = logging.getLogger(__name__)

AUTH_JWT_SECRET = os.getenv("AUTH_JWT_SECRET", "")
AUTH_JWT_ALGORITHM = os.getenv("AUTH_JWT_ALGORITHM", "HS256")
AUTH_JWT_AUDIENCE = os.getenv("AUTH_JWT_AUDIENCE") or None

bearer_scheme = HTTPBearer(auto_error=False)

_CREDENTIALS_ERROR = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


def decode_user_id(token: str) -> str:
    """Verify a token and return its subject (the user id)."""
    if not AUTH_JWT_SECRET:
        logger.error("AUTH_JWT_SECRET is not configured; rejecting token")
        raise _CREDENTIALS_ERROR

    try:
        payload = jwt.decode(
            token,
            AUTH_JWT_SECRET,
            algorithms=[AUTH_JWT_ALGORITHM],
            audience=AUTH_JWT_AUDIENCE,
            options={"verify_aud": AUTH_JWT_AUDIENCE is not None},
        )
    except JWTError as e:
        logger.info("Rejected token: %s", e)
        raise _CREDENTIALS_ERROR

    user_id = payload.get("sub")
    if not user_id or not isinstance(user_id, str):
        raise _CREDENTIALS_ERROR
    return user_id


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """FastAPI dependency: the authenticated caller's user id."""
    if credentials is None:
        raise _CREDENTIALS_ERROR
    return decode_user_id(credentials.credentials)


def authenticate_token(token: Optional[str]) -> Optional[str]:
    """WebSocket variant: user id for a query-string token, or None."""
    if not token:
        return None
    try:
        return decode_user_id(token)
    except HTTPException:
        return None
