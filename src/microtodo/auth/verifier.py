"""Token verification: token string in, Principal (or rejection) out.

Learn: Verification runs in a fixed order so each failure has one kind:
1. decode (TokenCodec.parse)               → MALFORMED
2. expiry against the verifier's clock     → EXPIRED
3. signature                               → BAD_SIGNATURE
4. typed claim validation (UserClaims)     → MALFORMED

An expired token is EXPIRED whether or not its signature checks out. For
a forged token the expiry comes from its unverified payload and is used
only to pick the rejection kind.

The userId claim is validated as a strict integer. A string "42", a float
42.0 or a boolean is a malformed token, not something to coerce.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError

from microtodo.auth.jwt import BadSignature, MalformedToken, TokenCodec


class RejectReason(str, Enum):
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"


_REJECT_MESSAGES = {
    RejectReason.MALFORMED: "Unauthorized: Invalid token",
    RejectReason.BAD_SIGNATURE: "Unauthorized: Invalid token",
    RejectReason.EXPIRED: "Unauthorized: Token has expired",
}


class TokenRejected(Exception):
    """Raised when a bearer token is not acceptable."""

    def __init__(self, reason: RejectReason, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)

    @property
    def message(self) -> str:
        """Client-facing message; never includes decoder internals."""
        return _REJECT_MESSAGES[self.reason]


@dataclass(frozen=True)
class Principal:
    """The authenticated identity for one request. Never persisted."""

    user_id: int
    username: str


class UserClaims(BaseModel):
    """Custom claims every identity token must carry."""

    model_config = ConfigDict(extra="forbid")

    user_id: StrictInt = Field(alias="userId", gt=0)


class TokenVerifier:
    def __init__(
        self,
        codec: TokenCodec,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.codec = codec
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def verify(self, token: str) -> Principal:
        """Return the Principal for `token` or raise TokenRejected."""
        now = self._clock()
        try:
            decoded = self.codec.parse(token)
        except BadSignature as e:
            if e.unverified is not None and e.unverified.is_expired(now):
                raise TokenRejected(RejectReason.EXPIRED, "token expired") from e
            raise TokenRejected(RejectReason.BAD_SIGNATURE, str(e)) from e
        except MalformedToken as e:
            raise TokenRejected(RejectReason.MALFORMED, str(e)) from e

        if decoded.is_expired(now):
            raise TokenRejected(RejectReason.EXPIRED, "token expired")

        try:
            claims = UserClaims.model_validate(decoded.claims)
        except ValidationError as e:
            raise TokenRejected(RejectReason.MALFORMED, "missing or invalid userId claim") from e

        return Principal(user_id=claims.user_id, username=decoded.subject)
