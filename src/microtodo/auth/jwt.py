"""JWT token creation and decoding.

Learn: A token is a compact JWS signed with one shared HMAC secret:

    {"sub": "<username>", "userId": 42, "iat": 1700000000, "exp": 1700003600}

Decoding and expiry are separate steps. parse() only answers "was this
minted by someone holding the secret?" and raises MalformedToken or
BadSignature; whether it is still fresh is DecodedToken.is_expired(), which
the verifier calls explicitly.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from microtodo.config import Settings

RESERVED_CLAIMS = frozenset({"sub", "iat", "exp"})


class TokenError(Exception):
    """Raised when a token cannot be decoded."""


class MalformedToken(TokenError):
    """The token is not a structurally valid JWS with sub/iat/exp."""


class BadSignature(TokenError):
    """The token decodes but was not signed with our secret.

    unverified is what the token claims about itself. It is only good for
    deciding how to report the rejection, never for identifying anyone.
    """

    def __init__(self, message: str, unverified: Optional["DecodedToken"] = None):
        super().__init__(message)
        self.unverified = unverified


@dataclass(frozen=True)
class DecodedToken:
    subject: str
    issued_at: datetime
    expires_at: datetime
    claims: dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class TokenCodec:
    """Signs and decodes identity tokens with a single symmetric secret.

    Built once per process from Settings and shared read-only by every
    request.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(minutes=60),
    ):
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCodec":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            ttl=timedelta(minutes=settings.access_token_expire_minutes),
        )

    def issue(
        self,
        subject: str,
        claims: Optional[dict[str, Any]] = None,
        *,
        now: Optional[datetime] = None,
        expires_in: Optional[timedelta] = None,
    ) -> str:
        """Create a signed token for `subject` carrying `claims`."""
        claims = claims or {}
        clash = RESERVED_CLAIMS.intersection(claims)
        if clash:
            raise ValueError(f"claims may not override {sorted(clash)}")

        issued = now or datetime.now(timezone.utc)
        expires = issued + (expires_in if expires_in is not None else self.ttl)
        payload = {
            **claims,
            "sub": subject,
            "iat": int(issued.timestamp()),
            "exp": int(expires.timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def parse(self, token: str) -> DecodedToken:
        """Verify the signature and decode. Does NOT check expiry."""
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": ["sub", "iat", "exp"],
                },
            )
        except jwt.InvalidSignatureError as e:
            raise BadSignature(
                "Signature verification failed", self._decode_unverified(token)
            ) from e
        except jwt.InvalidTokenError as e:
            raise MalformedToken(f"Invalid token: {e}") from e
        return self._to_decoded(payload)

    def _decode_unverified(self, token: str) -> Optional[DecodedToken]:
        try:
            payload = jwt.decode(
                token,
                options={"verify_signature": False, "require": ["sub", "iat", "exp"]},
            )
            return self._to_decoded(payload)
        except (jwt.InvalidTokenError, MalformedToken):
            return None

    @staticmethod
    def _to_decoded(payload: dict[str, Any]) -> DecodedToken:
        subject = payload.pop("sub")
        issued_at = payload.pop("iat")
        expires_at = payload.pop("exp")
        if not isinstance(subject, str) or not subject:
            raise MalformedToken("Invalid token: subject must be a non-empty string")
        if not (_is_int(issued_at) and _is_int(expires_at)):
            raise MalformedToken("Invalid token: iat/exp must be integer timestamps")

        try:
            issued = datetime.fromtimestamp(issued_at, tz=timezone.utc)
            expires = datetime.fromtimestamp(expires_at, tz=timezone.utc)
        except (OverflowError, ValueError, OSError) as e:
            raise MalformedToken("Invalid token: iat/exp out of range") from e

        return DecodedToken(
            subject=subject, claims=payload, issued_at=issued, expires_at=expires
        )
