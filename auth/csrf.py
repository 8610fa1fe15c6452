"""
auth/csrf.py -- Double-Submit-Cookie CSRF protection.

Protocol (stateless, no server-side token registry):
  1. Safe methods (GET, HEAD, OPTIONS) pass untouched.
  2. The CSRF cookie must be present and non-empty.
  3. The CSRF header must be present and non-empty.
  4. Cookie and header must be byte-for-byte equal.

The CSRF cookie is set at login without HttpOnly. Same-origin script reads it
and copies it into the header. A cross-site attacker can make the browser send
the cookie but cannot read it, so cannot produce a matching header.

check_csrf() holds the decision; CSRFMiddleware applies it to every request
that is not on the exempt path list.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Iterable
from enum import Enum

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from auth.cookies import CookiePolicy

logger = logging.getLogger("authcore.auth")

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class CSRFFailure(str, Enum):
    cookie_missing = "csrf_cookie_missing"
    header_missing = "csrf_header_missing"
    mismatch = "csrf_mismatch"


_MESSAGES = {
    CSRFFailure.cookie_missing: "CSRF token missing from cookie.",
    CSRFFailure.header_missing: "CSRF token missing from header.",
    CSRFFailure.mismatch: "CSRF token mismatch.",
}


def check_csrf(method: str, cookie_value: str | None, header_value: str | None) -> CSRFFailure | None:
    """Return why the request fails CSRF validation, or None if it may proceed."""
    if method.upper() in SAFE_METHODS:
        return None
    if not cookie_value:
        return CSRFFailure.cookie_missing
    if not header_value:
        return CSRFFailure.header_missing
    if not hmac.compare_digest(cookie_value.encode("utf-8"), header_value.encode("utf-8")):
        return CSRFFailure.mismatch
    return None


class CSRFMiddleware(BaseHTTPMiddleware):
    """Reject mutating requests whose CSRF cookie and header do not match.

    exempt_paths are compared against request.url.path exactly. Endpoints that
    run before a CSRF cookie can exist (register, login) belong there.
    """

    def __init__(self, app: ASGIApp, policy: CookiePolicy, exempt_paths: Iterable[str] = ()) -> None:
        super().__init__(app)
        self.policy = policy
        self.exempt_paths = frozenset(exempt_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        failure = check_csrf(
            request.method,
            request.cookies.get(self.policy.csrf_cookie_name),
            request.headers.get(self.policy.csrf_header_name),
        )
        if failure is not None:
            logger.info("CSRF rejected %s %s: %s", request.method, request.url.path, failure.value)
            return JSONResponse(
                status_code=403,
                content={"error": {"code": failure.value, "message": _MESSAGES[failure]}},
            )
        return await call_next(request)
