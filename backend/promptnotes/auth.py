"""
Cookie session middleware for Flask

Sessions are signed tokens carried in an HTTP-only cookie. This module reads
the cookie, verifies it, and guards routes that need a user.
"""

from __future__ import annotations

from functools import wraps
from typing import Mapping, Optional

from flask import g, request
from werkzeug.http import parse_cookie

from .config import Config
from .errors import Unauthenticated
from .services.container import get_services
from .services.tokens import TokenService


def get_session_token(headers: Mapping[str, str], cookie_name: Optional[str] = None) -> Optional[str]:
    """
    Pull the session token out of the ``Cookie`` header.

    Returns:
        Token string if the session cookie is present and non-empty, None otherwise
    """
    cookies = parse_cookie(headers.get("Cookie", "") or "")
    return cookies.get(cookie_name or Config.SESSION_COOKIE_NAME) or None


def extract_user_id(
    headers: Mapping[str, str],
    tokens: TokenService,
    cookie_name: Optional[str] = None,
) -> Optional[str]:
    """
    Resolve the signed-in user from request headers.

    Returns:
        The user id, or None when the cookie is missing or its token does
        not verify (expired, tampered, garbage all look the same).
    """
    token = get_session_token(headers, cookie_name)
    if not token:
        return None
    payload = tokens.verify(token)
    if not payload:
        return None
    return payload["userId"]


def set_session_cookie(response, token: str):
    response.set_cookie(
        Config.SESSION_COOKIE_NAME,
        token,
        max_age=Config.SESSION_MAX_AGE_SECONDS,
        httponly=True,
        secure=Config.is_production(),
        samesite="Lax",
        path="/",
    )
    return response


def clear_session_cookie(response):
    response.set_cookie(
        Config.SESSION_COOKIE_NAME,
        "",
        max_age=0,
        httponly=True,
        secure=Config.is_production(),
        samesite="Lax",
        path="/",
    )
    return response


def require_auth(f):
    """
    Decorator to require a signed-in user for a Flask route.

    Usage:
        @bp.get('/protected')
        @require_auth
        def protected_route():
            user_id = g.user_id
            return {'message': 'Success'}
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = extract_user_id(request.headers, get_services().tokens)
        if not user_id:
            raise Unauthenticated("Not authenticated")

        g.user_id = user_id
        return f(*args, **kwargs)

    return decorated_function
