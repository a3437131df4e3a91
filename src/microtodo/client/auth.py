"""httpx auth hook that attaches the stored bearer token.

Learn: httpx calls async_auth_flow() for every request sent by a client
built with auth=BearerTokenAuth(store). The token is read from the store
under its lock just before the request is yielded. A clear() that lands
after that read does not recall a request already on its way; the next
request goes out without a header. Public endpoints (login, register,
availability checks) go out untouched.

If a request carrying a token comes back 401, the session is no longer
valid: the store is cleared, which flips is_authenticated to False and
sends the UI back to login.
"""

from typing import AsyncGenerator, Callable

import httpx
import structlog

from microtodo.auth.public import CLIENT_PUBLIC_PATHS
from microtodo.client.token_store import TokenStore

logger = structlog.get_logger()

PublicPredicate = Callable[[httpx.Request], bool]


def is_public_request(request: httpx.Request) -> bool:
    return CLIENT_PUBLIC_PATHS.is_public(request.method, request.url.path)


class BearerTokenAuth(httpx.Auth):
    def __init__(self, store: TokenStore, is_public: PublicPredicate = is_public_request):
        self.store = store
        self.is_public = is_public

    def sync_auth_flow(self, request):
        raise RuntimeError("BearerTokenAuth only works with httpx.AsyncClient")

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        if self.is_public(request):
            yield request
            return

        token = await self.store.current_token()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

        response = yield request

        if response.status_code == 401 and token:
            if await self.store.clear_if_current(token):
                logger.info("client.session_invalidated", path=request.url.path)
