# src/dblocator/middleware.py

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

def _extract_bearer_token(request: Request) -> None:
    """Places a JWT Bearer token, if any, in request.state."""
    token = request.headers.get('Authorization')
    if token and token.startswith("Bearer "):
        setattr(request.state, "token", token.split(" ", 1)[1].strip())

class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Only extracts credentials. Verification happens in the route dependencies."""
    AUTH_EXTRACTORS = [
        _extract_bearer_token,
    ]

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        setattr(request.state, "token", None)

        for extractor in self.AUTH_EXTRACTORS:
            extractor(request)

        return await call_next(request)
