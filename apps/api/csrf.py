# apps/api/csrf.py
"""Double-submit CSRF: a signed token in a readable cookie, echoed back in a header."""
import secrets
from typing import Optional

from fastapi import Request
from fastapi.responses import Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from config import settings
from errors import ForbiddenError

CSRF_COOKIE = "csrf"
CSRF_HEADER = "x-csrf-token"

_signer = URLSafeTimedSerializer(settings.session_secret, salt="reels-csrf")


def new_csrf_token() -> str:
    return _signer.dumps(secrets.token_urlsafe(32))


def issue_csrf(response: Response) -> str:
    token = new_csrf_token()
    response.set_cookie(
        key=CSRF_COOKIE,
        value=token,
        httponly=False,  # the client reads it to echo it back
        samesite="lax",
        secure=settings.env.lower() == "production",
        path="/",
        max_age=settings.csrf_ttl_seconds,
    )
    return token


def verify_csrf(cookie: Optional[str], header: Optional[str]) -> None:
    if not cookie or not header:
        raise ForbiddenError("CSRF token missing")
    if not secrets.compare_digest(cookie, header):
        raise ForbiddenError("CSRF token mismatch")
    try:
        _signer.loads(header, max_age=settings.csrf_ttl_seconds)
    except SignatureExpired as exc:
        raise ForbiddenError("CSRF token expired") from exc
    except BadSignature as exc:
        raise ForbiddenError("Invalid CSRF token") from exc


def require_csrf(request: Request) -> None:
    verify_csrf(request.cookies.get(CSRF_COOKIE), request.headers.get(CSRF_HEADER))
