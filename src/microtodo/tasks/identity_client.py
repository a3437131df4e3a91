"""Async HTTP client for the identity service.

Learn: The task service asks the identity service "does user N exist?"
before it creates a task for them. Two rules shape this client:

1. It authenticates with the shared service key (X-API-Key), never with
   the end user's bearer token. That token grants access to the task
   service, not to the identity service.
2. It never guesses. 404 means the user does not exist; anything else
   that is not a clean 200 (connection refused, timeout, 5xx, garbage
   body) is DependencyUnavailable, and task creation stops there.
"""

from typing import Optional

import httpx
import structlog
from pydantic import ValidationError

from microtodo.errors import DependencyUnavailable, NotFound
from microtodo.identity.schemas import UserSummary
from microtodo.middleware.request_id import REQUEST_ID_HEADER

logger = structlog.get_logger()


class IdentityClient:
    def __init__(
        self,
        base_url: str,
        service_key: str,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_seconds),
            headers={"X-API-Key": service_key},
            transport=transport,
        )

    async def confirm_user_exists(
        self, user_id: int, request_id: Optional[str] = None
    ) -> UserSummary:
        """Return the user's summary, or raise NotFound / DependencyUnavailable."""
        headers = {REQUEST_ID_HEADER: request_id} if request_id else None
        try:
            response = await self._client.get(
                f"/api/internal/users/{user_id}", headers=headers
            )
        except httpx.TimeoutException as e:
            logger.warning("identity_client.timeout", user_id=user_id, base_url=self.base_url)
            raise DependencyUnavailable("Identity service timed out") from e
        except httpx.HTTPError as e:
            logger.warning(
                "identity_client.unreachable",
                user_id=user_id,
                base_url=self.base_url,
                error=str(e),
            )
            raise DependencyUnavailable("Identity service unavailable") from e

        if response.status_code == 404:
            raise NotFound(f"User not found with id: {user_id}")
        if response.status_code != 200:
            logger.warning(
                "identity_client.bad_status",
                user_id=user_id,
                status_code=response.status_code,
            )
            raise DependencyUnavailable(
                f"Identity service returned {response.status_code}"
            )

        try:
            summary = UserSummary.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise DependencyUnavailable("Identity service returned an invalid body") from e

        if summary.id != user_id:
            raise DependencyUnavailable("Identity service returned a different user")
        return summary

    async def aclose(self) -> None:
        await self._client.aclose()
