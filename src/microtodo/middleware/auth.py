"""Authentication gate: every request is public, authenticated, or rejected.

Learn: This runs before routing, so a rejected request never reaches a
handler (no partial handler execution). Per request:

    public path?            → handler, no principal
    no "Bearer <token>"     → 401 Missing or invalid token
    verifier rejects        → 401 Invalid token / Token has expired
    otherwise               → request.state.principal = Principal → handler

request.state lives in the ASGI scope of this one request, so concurrent
requests on the same worker never see each other's principal.
"""

from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from microtodo.auth.public import PublicPaths
from microtodo.auth.verifier import TokenRejected, TokenVerifier

logger = structlog.get_logger()

MISSING_TOKEN_MESSAGE = "Unauthorized: Missing or invalid token"


def _unauthorized(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"error": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an Authorization header, or None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class AuthenticationMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, verifier: TokenVerifier, public_paths: PublicPaths):
        super().__init__(app)
        self.verifier = verifier
        self.public_paths = public_paths

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if self.public_paths.is_public(request.method, path):
            return await call_next(request)

        token = extract_bearer_token(request.headers.get("Authorization"))
        if token is None:
            logger.info("auth.missing_token", path=path)
            return _unauthorized(MISSING_TOKEN_MESSAGE)

        try:
            principal = self.verifier.verify(token)
        except TokenRejected as e:
            logger.info("auth.token_rejected", path=path, reason=e.reason.value)
            return _unauthorized(e.message)

        request.state.principal = principal
        structlog.contextvars.bind_contextvars(
            user_id=principal.user_id, username=principal.username
        )
        return await call_next(request)
