"""Client side of the MicroTodo protocol.

Learn: The client keeps the token issued at login in durable storage,
attaches it to every non-public request and forgets it on logout or
when a service answers 401.
"""

from microtodo.client.api import ApiError, MicroTodoClient, SessionExpired
from microtodo.client.auth import BearerTokenAuth
from microtodo.client.token_store import StoredSession, TokenStore

__all__ = [
    "ApiError",
    "BearerTokenAuth",
    "MicroTodoClient",
    "SessionExpired",
    "StoredSession",
    "TokenStore",
]
