"""Ownership guard: a caller may only touch resources they own.

Learn: The owner id always comes from the stored row, and the caller id
always comes from the verified token. Nothing from the request payload
takes part in the comparison.
"""

from microtodo.auth.verifier import Principal
from microtodo.errors import OwnershipViolation


def ensure_owner(owner_user_id: int, principal: Principal) -> None:
    """Raise OwnershipViolation unless `principal` owns the resource."""
    if owner_user_id != principal.user_id:
        raise OwnershipViolation()
