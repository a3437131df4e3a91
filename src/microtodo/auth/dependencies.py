"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers. The heavy lifting
already happened in AuthenticationMiddleware; here we only read back what
it bound to the request, so handlers get the Principal as an explicit
argument instead of reaching for global state.

Two credentials exist:
1. Bearer JWT (end users) → get_principal
2. X-API-Key (task service → identity service) → require_service_key
"""

import hmac
from typing import Optional

from fastapi import Header, Request

from microtodo.auth.verifier import Principal
from microtodo.errors import AuthFailure, PrincipalMissing


def get_principal(request: Request) -> Principal:
    """The authenticated caller. Missing means the gate was bypassed."""
    principal = getattr(request.state, "principal", None)
    if not isinstance(principal, Principal):
        raise PrincipalMissing()
    return principal


def require_service_key(
    request: Request,
    x_api_key: Optional[str] = Header(None),
) -> None:
    """Only callers holding the shared service key may pass."""
    expected = request.app.state.settings.service_api_key
    if not x_api_key or not hmac.compare_digest(
        x_api_key.encode("utf-8"), expected.encode("utf-8")
    ):
        raise AuthFailure("Unauthorized: Invalid service credential")
