"""
api/routes/v1/auth.py -- Registration, login, logout and identity endpoints.

Routes:
  POST /api/v1/auth/register  -- create account; 201, 409 on duplicate email
  POST /api/v1/auth/login     -- password login; sets session + CSRF cookies
  POST /api/v1/auth/logout    -- deletes the session (best effort); clears cookies; always 200
  GET  /api/v1/auth/me        -- current user (requires session cookie)

Domain errors raised by AuthService (DuplicateUser, InvalidCredentials,
StoreError, ...) are not caught here. The AuthError handler in api/main.py
renders them, so every route answers the same envelope for the same failure.

Handlers that hash passwords or hit the store are plain `def`: FastAPI runs
them in its thread pool, keeping bcrypt off the event loop.

Security:
  [M5] Cache-Control: no-store on login responses.
  Logout never fails the client flow. A store error during session deletion is
       logged and the cookies are cleared anyway.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import AuthResponse, LoginRequest, MeResponse, MessageResponse, RegisterRequest, UserOut
from auth.cookies import CookiePolicy
from auth.dependencies import get_auth_service, get_cookie_policy, get_current_user
from auth.errors import StoreError
from auth.models import AuthUser
from auth.service import AuthService

logger = logging.getLogger("authcore.api")

# Auth policy:
# - POST /api/v1/auth/register: public, CSRF-exempt (no CSRF cookie exists yet)
# - POST /api/v1/auth/login:    public, CSRF-exempt (no CSRF cookie exists yet)
# - POST /api/v1/auth/logout:   public, CSRF-exempt (must always answer 200)
# - GET  /api/v1/auth/me:       requires session (get_current_user)
router = APIRouter()


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(body: RegisterRequest, service: AuthService = Depends(get_auth_service)) -> AuthResponse:
    """Create an account. Does not log the new user in."""
    user = service.register(body.email, body.password)
    return AuthResponse(message="User registered successfully.", user=UserOut.from_auth_user(user))


@router.post("/auth/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
    policy: CookiePolicy = Depends(get_cookie_policy),
) -> JSONResponse:
    """Authenticate with email and password; set session and CSRF cookies.

    Wrong password and unknown email produce the same 401 (InvalidCredentials).
    """
    result = service.login(body.email, body.password)
    resp = JSONResponse(
        status_code=200,
        content=AuthResponse(message="Login successful.", user=UserOut.from_auth_user(result.user)).model_dump(),
    )
    policy.set_login_cookies(resp, result)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
def logout(
    request: Request,
    service: AuthService = Depends(get_auth_service),
    policy: CookiePolicy = Depends(get_cookie_policy),
) -> JSONResponse:
    """Invalidate the session server-side (best effort) and clear both cookies."""
    token = request.cookies.get(policy.session_cookie_name)
    if not token:
        message = "Already logged out."
    else:
        message = "Logged out successfully."
        try:
            service.logout(token)
        except StoreError:
            logger.warning("Session delete failed during logout; clearing cookies anyway")

    resp = JSONResponse(content=MessageResponse(message=message).model_dump())
    policy.clear_login_cookies(resp)
    return resp


@router.get("/auth/me", response_model=MeResponse)
def me(current_user: AuthUser = Depends(get_current_user)) -> MeResponse:
    """Return identity information for the currently authenticated user."""
    return MeResponse(user=UserOut.from_auth_user(current_user))
