# src/dblocator/api/dependencies/authentication.py

import logging
from fastapi import HTTPException, status, Request
from jose import JWTError
from dblocator.core.config import settings
from dblocator.core.security import decode_token, token_scopes

logger = logging.getLogger(__name__)

async def require_admin(request: Request) -> str:
    """
    Verifies the bearer token placed in request.state by the middleware and
    requires ADMIN_SCOPE in its 'scope' claim. Returns the token subject.
    """
    token = getattr(request.state, "token", None)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication credentials were not provided.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    subject = payload.get("sub")
    if subject is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    if settings.ADMIN_SCOPE not in token_scopes(payload):
        logger.warning(f"Token subject '{subject}' lacks scope '{settings.ADMIN_SCOPE}'.")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrator scope required.")
    return subject
