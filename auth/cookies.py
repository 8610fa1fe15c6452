"""
auth/cookies.py -- Cookie policy for the session and CSRF cookies.

CookiePolicy is built once by create_app() from Settings and handed to the
routes and to CSRFMiddleware. Nothing reads cookie names or flags from module
globals, so tests can flip the Secure flag without touching the environment.

  session cookie: httponly=True. Script never needs the session token.
  CSRF cookie:    httponly=False. The SPA reads it and echoes it back in the
                  CSRF header (Double-Submit-Cookie). A cross-site page can make
                  the browser send the cookie but cannot read its value.
  samesite="lax": not sent on cross-site POST, sent on top-level navigation.
  secure:         Settings.secure_cookies (on by default outside debug mode).
  max_age:        both cookies live exactly as long as the server-side session.
"""

from __future__ import annotations

from dataclasses import dataclass

from starlette.responses import Response

from auth.models import LoginResult


@dataclass(frozen=True)
class CookiePolicy:
    session_cookie_name: str = "session_token"
    csrf_cookie_name: str = "csrf_token"
    csrf_header_name: str = "X-CSRF-Token"
    max_age: int = 7 * 24 * 60 * 60
    secure: bool = True
    path: str = "/"
    samesite: str = "lax"

    @classmethod
    def from_settings(cls, settings) -> CookiePolicy:
        return cls(
            session_cookie_name=settings.session_cookie_name,
            csrf_cookie_name=settings.csrf_cookie_name,
            csrf_header_name=settings.csrf_header_name,
            max_age=settings.session_duration_seconds,
            secure=bool(settings.secure_cookies),
        )

    def set_login_cookies(self, response: Response, result: LoginResult) -> None:
        """Write the session cookie (HttpOnly) and the CSRF cookie (script-readable)."""
        self._set(response, self.session_cookie_name, result.session_token, self.max_age, httponly=True)
        self._set(response, self.csrf_cookie_name, result.csrf_token, self.max_age, httponly=False)

    def clear_login_cookies(self, response: Response) -> None:
        """Expire both cookies immediately (Max-Age=-1)."""
        self._set(response, self.session_cookie_name, "", -1, httponly=True)
        self._set(response, self.csrf_cookie_name, "", -1, httponly=False)

    def _set(self, response: Response, name: str, value: str, max_age: int, httponly: bool) -> None:
        response.set_cookie(
            name,
            value=value,
            max_age=max_age,
            path=self.path,
            secure=self.secure,
            httponly=httponly,
            samesite=self.samesite,
        )
