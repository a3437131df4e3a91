"""Middleware stack shared by both services.

Learn: Starlette middleware executes in reverse order of registration.
Request flow: CORS → RequestId → Authentication → handler. RequestId sits
outside the gate so that rejected requests are still logged with their
request id.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from microtodo.auth.public import PublicPaths
from microtodo.auth.verifier import TokenVerifier
from microtodo.config import Settings
from microtodo.middleware.auth import AuthenticationMiddleware
from microtodo.middleware.request_id import RequestIdMiddleware


def install_middleware(
    app: FastAPI,
    settings: Settings,
    verifier: TokenVerifier,
    public_paths: PublicPaths,
    service: str,
) -> None:
    app.add_middleware(
        AuthenticationMiddleware, verifier=verifier, public_paths=public_paths
    )
    app.add_middleware(RequestIdMiddleware, service=service)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
