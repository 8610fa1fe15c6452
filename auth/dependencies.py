"""
auth/dependencies.py -- FastAPI Depends() helpers that gate requests on the session cookie.

The resolved identity is returned as a typed AuthUser rather than stashed in a
request-scoped dict, so a route declares what it needs in its signature:

    @router.get("/private")
    def route(user: AuthUser = Depends(get_current_user)): ...

    @router.get("/public")
    def route(user: AuthUser | None = Depends(try_get_current_user)): ...

try_get_current_user() is the soft variant (returns None on any failure).
get_current_user() is the hard variant and raises HTTP 401.

Each gated request makes exactly one validate_session() call. FastAPI caches a
dependency's result within one request, so a route that depends on both
helpers indirectly still causes a single store round trip.

Layer rule: may import from fastapi (this module is part of the FastAPI
dependency injection system). No imports from api/ or core/.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request

from auth.cookies import CookiePolicy
from auth.errors import InvalidSession, StoreError
from auth.models import AuthUser
from auth.service import AuthService

logger = logging.getLogger("authcore.auth")


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_cookie_policy(request: Request) -> CookiePolicy:
    return request.app.state.cookie_policy


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": "unauthorized", "message": message},
    )


def get_current_user(request: Request) -> AuthUser:
    """Require a valid session cookie. Raises HTTP 401 otherwise.

    Missing cookie, unknown/expired token and store failure all reject. A store
    outage must not let requests through as authenticated.
    """
    policy = get_cookie_policy(request)
    token = request.cookies.get(policy.session_cookie_name)
    if not token:
        raise _unauthorized("Authentication required.")
    try:
        return get_auth_service(request).validate_session(token)
    except (InvalidSession, StoreError) as exc:
        raise _unauthorized("Invalid or expired session.") from exc


def try_get_current_user(request: Request) -> AuthUser | None:
    """Resolve the session cookie if present. Never raises for auth reasons.

    Downstream handlers must check for None explicitly.
    """
    policy = get_cookie_policy(request)
    token = request.cookies.get(policy.session_cookie_name)
    if not token:
        return None
    try:
        return get_auth_service(request).validate_session(token)
    except InvalidSession:
        return None
    except StoreError:
        logger.warning("Session lookup failed; treating request as anonymous")
        return None
