"""Public-path allow-lists.

Learn: The same rules are used on both ends of the wire. The services'
authentication middleware lets these requests through without a token,
and the client's BearerTokenAuth leaves them unmodified. Keeping one
definition means the two sides cannot drift apart.

A rule matches on path (exact, or prefix when it ends with "/") and,
optionally, on method: POST /api/users is registration and public, while
GET /api/users/5 is not.
"""

from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True)
class PublicRule:
    path: str
    method: Optional[str] = None

    def matches(self, method: str, path: str) -> bool:
        if self.method is not None and self.method != method.upper():
            return False
        if self.path.endswith("/"):
            return path.startswith(self.path) or path == self.path.rstrip("/")
        return path == self.path


class PublicPaths:
    def __init__(self, rules: Iterable[PublicRule]):
        self.rules = tuple(rules)

    def __add__(self, other: "PublicPaths") -> "PublicPaths":
        return PublicPaths(self.rules + other.rules)

    def is_public(self, method: str, path: str) -> bool:
        return any(rule.matches(method, path) for rule in self.rules)


# Health + OpenAPI docs, served by both services
INFRA_PUBLIC_PATHS = PublicPaths(
    [
        PublicRule("/health", "GET"),
        PublicRule("/docs/"),
        PublicRule("/redoc"),
        PublicRule("/openapi.json", "GET"),
    ]
)

IDENTITY_PUBLIC_PATHS = INFRA_PUBLIC_PATHS + PublicPaths(
    [
        PublicRule("/api/auth/login", "POST"),
        PublicRule("/api/users", "POST"),
        PublicRule("/api/users/check-username", "GET"),
        PublicRule("/api/users/check-email", "GET"),
        # Not anonymous: guarded by the service API key instead of a bearer token
        PublicRule("/api/internal/"),
    ]
)

# The task service has no public API endpoints
TASK_PUBLIC_PATHS = INFRA_PUBLIC_PATHS

# What the client never attaches a token to
CLIENT_PUBLIC_PATHS = PublicPaths(
    [
        PublicRule("/api/auth/login", "POST"),
        PublicRule("/api/users", "POST"),
        PublicRule("/api/users/check-username", "GET"),
        PublicRule("/api/users/check-email", "GET"),
        PublicRule("/health", "GET"),
    ]
)
