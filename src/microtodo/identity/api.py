"""Identity service API: login, registration, profile, internal lookup.

Learn: Routes for the identity service:
- POST /api/auth/login              → username/password → bearer token (public)
- POST /api/users                   → register (public)
- GET  /api/users/check-username    → availability (public)
- GET  /api/users/check-email       → availability (public)
- GET|PUT|DELETE /api/users/me      → own profile (bearer)
- PATCH /api/users/me/password      → change password (bearer)
- GET  /api/users/{id}              → same-user only (bearer)
- GET  /api/internal/users/{id}     → existence check for the task service (service key)

Which routes are public is decided by IDENTITY_PUBLIC_PATHS in the
authentication middleware, not here.
"""

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from microtodo.auth.dependencies import get_principal, require_service_key
from microtodo.auth.ownership import ensure_owner
from microtodo.auth.verifier import Principal
from microtodo.db.engine import get_db
from microtodo.identity.schemas import (
    Availability,
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    UpdateProfileRequest,
    UserCreate,
    UserProfile,
    UserResponse,
    UserSummary,
)
from microtodo.identity.service import AuthService, UserService

auth_router = APIRouter(prefix="/api/auth")
users_router = APIRouter(prefix="/api/users")
internal_router = APIRouter(
    prefix="/api/internal", dependencies=[Depends(require_service_key)]
)


def _user_svc(request: Request, db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db, bcrypt_rounds=request.app.state.settings.bcrypt_rounds)


def _auth_svc(request: Request, db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(
        db,
        codec=request.app.state.codec,
        bcrypt_rounds=request.app.state.settings.bcrypt_rounds,
    )


# ─── Login ───────────────────────────────────────────────


@auth_router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, svc: AuthService = Depends(_auth_svc)):
    """Login with username and password → bearer token."""
    result = await svc.login(body.username, body.password)
    return LoginResponse(
        token=result.token, user_id=result.user_id, username=result.username
    )


# ─── Registration + availability ─────────────────────────


@users_router.post("", response_model=UserResponse, status_code=201)
async def register(body: UserCreate, svc: UserService = Depends(_user_svc)):
    """Create a new user account."""
    return await svc.create_user(
        username=body.username,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )


@users_router.get("/check-username", response_model=Availability)
async def check_username(
    username: str = Query(..., min_length=1),
    svc: UserService = Depends(_user_svc),
):
    return Availability(available=not await svc.username_exists(username))


@users_router.get("/check-email", response_model=Availability)
async def check_email(
    email: str = Query(..., min_length=1),
    svc: UserService = Depends(_user_svc),
):
    return Availability(available=not await svc.email_exists(email))


# ─── Current user ────────────────────────────────────────


@users_router.get("/me", response_model=UserProfile)
async def get_me(
    principal: Principal = Depends(get_principal),
    svc: UserService = Depends(_user_svc),
):
    """Get the current authenticated user's profile."""
    return await svc.require_user(principal.user_id)


@users_router.put("/me", response_model=UserProfile)
async def update_me(
    body: UpdateProfileRequest,
    principal: Principal = Depends(get_principal),
    svc: UserService = Depends(_user_svc),
):
    user = await svc.require_user(principal.user_id)
    return await svc.update_profile(
        user, first_name=body.first_name, last_name=body.last_name
    )


@users_router.patch("/me/password", status_code=204)
async def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_principal),
    svc: UserService = Depends(_user_svc),
):
    user = await svc.require_user(principal.user_id)
    await svc.change_password(user, body.old_password, body.new_password)
    return Response(status_code=204)


@users_router.delete("/me", status_code=204)
async def delete_me(
    principal: Principal = Depends(get_principal),
    svc: UserService = Depends(_user_svc),
):
    """Delete the caller's account. Outstanding tokens stay valid until they expire."""
    user = await svc.require_user(principal.user_id)
    await svc.delete_user(user)
    return Response(status_code=204)


@users_router.get("/{user_id}", response_model=UserProfile)
async def get_user(
    user_id: int,
    principal: Principal = Depends(get_principal),
    svc: UserService = Depends(_user_svc),
):
    """Get a user by id. Same-user only: anyone else gets 403."""
    ensure_owner(user_id, principal)
    return await svc.require_user(user_id)


# ─── Internal (service-to-service) ───────────────────────


@internal_router.get("/users/{user_id}", response_model=UserSummary)
async def lookup_user(user_id: int, svc: UserService = Depends(_user_svc)):
    """Existence check used by the task service when it creates a task."""
    return await svc.require_user(user_id)
