"""Tests for the public-path allow-lists shared by services and client."""

import pytest

from microtodo.auth.public import (
    CLIENT_PUBLIC_PATHS,
    IDENTITY_PUBLIC_PATHS,
    TASK_PUBLIC_PATHS,
    PublicRule,
)


def test_exact_rule_matches_only_that_path():
    rule = PublicRule("/api/auth/login", "POST")
    assert rule.matches("POST", "/api/auth/login")
    assert rule.matches("post", "/api/auth/login")
    assert not rule.matches("GET", "/api/auth/login")
    assert not rule.matches("POST", "/api/auth/login/extra")


def test_prefix_rule_matches_subpaths_and_bare_path():
    rule = PublicRule("/docs/")
    assert rule.matches("GET", "/docs")
    assert rule.matches("GET", "/docs/oauth2-redirect")
    assert not rule.matches("GET", "/docsx")


@pytest.mark.parametrize(
    "method,path",
    [
        ("POST", "/api/auth/login"),
        ("POST", "/api/users"),
        ("GET", "/api/users/check-username"),
        ("GET", "/api/users/check-email"),
        ("GET", "/health"),
    ],
)
def test_identity_public_endpoints(method, path):
    assert IDENTITY_PUBLIC_PATHS.is_public(method, path)


@pytest.mark.parametrize(
    "method,path",
    [
        ("GET", "/api/users/me"),
        ("GET", "/api/users/5"),
        ("GET", "/api/users"),
        ("DELETE", "/api/users/me"),
    ],
)
def test_identity_protected_endpoints(method, path):
    assert not IDENTITY_PUBLIC_PATHS.is_public(method, path)


def test_task_service_has_no_public_api():
    assert TASK_PUBLIC_PATHS.is_public("GET", "/health")
    for method in ("GET", "POST", "PUT", "DELETE"):
        assert not TASK_PUBLIC_PATHS.is_public(method, "/api/tasks")
        assert not TASK_PUBLIC_PATHS.is_public(method, "/api/tasks/1")


def test_client_never_treats_service_key_routes_as_its_own():
    assert not CLIENT_PUBLIC_PATHS.is_public("GET", "/api/internal/users/1")
    assert CLIENT_PUBLIC_PATHS.is_public("POST", "/api/auth/login")
    assert not CLIENT_PUBLIC_PATHS.is_public("GET", "/api/tasks")
