"""bcrypt password hashing for the credential store.

Learn: Only the identity service hashes passwords. The cost factor comes
from Settings.bcrypt_rounds (12 by default, about 100ms per hash); tests
turn it down to 4. Input is cut to 72 bytes, bcrypt's limit.
"""

from functools import lru_cache

import bcrypt


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:72]


def hash_password(password: str, rounds: int = 12) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """True if `password` matches; a corrupt stored hash never matches."""
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=4)
def dummy_hash(rounds: int = 12) -> str:
    """A throwaway hash to check against when the user does not exist.

    Login runs one bcrypt comparison either way, so an unknown username
    costs about as much time as a wrong password.
    """
    return hash_password("microtodo-dummy-password", rounds=rounds)
