"""
Session tokens and the current-user dependency.

Tokens are HS256 JWTs carrying the user id in `sub`. A request may present
one as `Authorization: Bearer <token>` or in the session cookie.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from fastapi import Depends, Request
from jose import JWTError, jwt
from sqlmodel import Session

from app.core.config import settings
from app.core.database import get_session
from app.core.exceptions import AuthenticationError
from app.models.user import User

logger = logging.getLogger(__name__)


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Return a signed access token for the given user."""
    if expires_delta is None:
        expires_delta = timedelta(days=settings.session_duration_days)

    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + expires_delta).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> int:
    """
    Verify a token and return the user id it was issued for.

    Raises:
        AuthenticationError: If the token is malformed, expired or badly signed
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError("Invalid or expired session") from e

    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError) as e:
        raise AuthenticationError("Invalid or expired session") from e


def extract_token(request: Request) -> Optional[str]:
    """Bearer header first, then the session cookie."""
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return request.cookies.get(settings.session_cookie_name)


def get_current_user(request: Request, session: Session = Depends(get_session)) -> User:
    """Return the authenticated user or raise AuthenticationError (401)."""
    token = extract_token(request)
    if not token:
        raise AuthenticationError("Unauthorized")

    user_id = decode_access_token(token)
    user = session.get(User, user_id)
    if not user:
        logger.warning(f"Token presented for missing user {user_id}")
        raise AuthenticationError("Unauthorized")
    return user


def get_current_user_id(user: User = Depends(get_current_user)) -> int:
    return user.id
