# src/dblocator/core/security.py

from datetime import datetime, timedelta, timezone
from typing import Any, Union, Iterable, Optional
from jose import jwt
from dblocator.core.config import settings

def create_access_token(
    subject: Union[str, Any],
    scopes: Optional[Iterable[str]] = None,
    expires_delta: timedelta = None
) -> str:
    """
    Creates a new JWT access token.

    :param subject: encoded in the 'sub' claim.
    :param scopes: space separated into the 'scope' claim.
    :param expires_delta: token lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "exp": expire,
        "sub": str(subject),
    }
    if scopes:
        to_encode["scope"] = " ".join(scopes)

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_token(token: str) -> dict:
    """
    Decodes and verifies a JWT access token (signature, expiry and algorithm).

    :raises JWTError: for any invalid token. The caller turns it into a 401.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])

def token_scopes(payload: dict) -> set[str]:
    scope = payload.get("scope") or ""
    if isinstance(scope, (list, tuple)):
        return set(scope)
    return set(scope.split())
