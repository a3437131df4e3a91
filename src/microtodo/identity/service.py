"""Identity service business logic: accounts and token issuance.

Learn: AuthService is the only place in the system that mints tokens.
It fails login the same way whether the username is unknown or the
password is wrong, so the response never tells an attacker which
usernames exist.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from microtodo.auth.jwt import TokenCodec
from microtodo.auth.password import dummy_hash, hash_password, verify_password
from microtodo.errors import AuthFailure, Conflict, Forbidden, NotFound
from microtodo.identity.models import User

logger = structlog.get_logger()


@dataclass(frozen=True)
class LoginResult:
    token: str
    user_id: int
    username: str


# ═══════════════════════════════════════════════════════════
# Users (credential store)
# ═══════════════════════════════════════════════════════════


class UserService:
    def __init__(self, db: AsyncSession, bcrypt_rounds: int = 12):
        self.db = db
        self.bcrypt_rounds = bcrypt_rounds

    # ─── Lookups ─────────────────────────────────────────

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def require_user(self, user_id: int) -> User:
        user = await self.get_user(user_id)
        if not user:
            raise NotFound("User not found")
        return user

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalars().first()

    async def username_exists(self, username: str) -> bool:
        q = select(func.count()).select_from(User).where(User.username == username)
        return (await self.db.execute(q)).scalar_one() > 0

    async def email_exists(self, email: str) -> bool:
        q = select(func.count()).select_from(User).where(User.email == email)
        return (await self.db.execute(q)).scalar_one() > 0

    # ─── Mutations ───────────────────────────────────────

    async def create_user(
        self,
        username: str,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        if await self.username_exists(username):
            raise Conflict("Username already exists")
        if await self.email_exists(email):
            raise Conflict("Email already exists")

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
            first_name=first_name,
            last_name=last_name,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent registration
            await self.db.rollback()
            raise Conflict("Username or email already exists") from e
        await self.db.refresh(user)
        logger.info("identity.user_registered", user_id=user.id, username=username)
        return user

    async def update_profile(
        self,
        user: User,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        if first_name is not None:
            user.first_name = first_name
        if last_name is not None:
            user.last_name = last_name
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def change_password(self, user: User, old_password: str, new_password: str) -> None:
        if not verify_password(old_password, user.password_hash):
            raise Forbidden("Old password incorrect")
        user.password_hash = hash_password(new_password, rounds=self.bcrypt_rounds)
        await self.db.commit()
        logger.info("identity.password_changed", user_id=user.id)

    async def delete_user(self, user: User) -> None:
        user_id = user.id
        await self.db.delete(user)
        await self.db.commit()
        logger.info("identity.user_deleted", user_id=user_id)


# ═══════════════════════════════════════════════════════════
# Auth (token issuer)
# ═══════════════════════════════════════════════════════════


class AuthService:
    def __init__(self, db: AsyncSession, codec: TokenCodec, bcrypt_rounds: int = 12):
        self.users = UserService(db, bcrypt_rounds=bcrypt_rounds)
        self.codec = codec
        self.bcrypt_rounds = bcrypt_rounds

    async def login(self, username: str, password: str) -> LoginResult:
        """Check credentials and mint a token. Read-only on the user row."""
        user = await self.users.get_by_username(username)

        if user is None:
            verify_password(password, dummy_hash(self.bcrypt_rounds))
            logger.info("identity.login_failed", reason="unknown_user")
            raise AuthFailure()

        if not verify_password(password, user.password_hash):
            logger.info("identity.login_failed", reason="bad_password", user_id=user.id)
            raise AuthFailure()

        token = self.codec.issue(user.username, {"userId": user.id})
        logger.info("identity.login_succeeded", user_id=user.id)
        return LoginResult(token=token, user_id=user.id, username=user.username)
