"""
REST API routes for accounts and sessions.

- Register / login / logout
- Session introspection and refresh
- Profile and password changes

Sessions live in an HTTP-only cookie; see auth.py.
"""

from flask import Blueprint, g, request

from .auth import clear_session_cookie, get_session_token, require_auth, set_session_cookie
from .config import Config
from .errors import InvalidCredentials, NotFound, Unauthenticated, ValidationError
from .responses import json_body, parse_body, success
from .services.container import get_services
from .services.models import ChangePasswordRequest, LoginRequest, RegisterRequest

bp = Blueprint("auth", __name__, url_prefix="/auth")


def _signed_in(data, user_id: str):
    """Envelope response carrying a fresh session cookie for ``user_id``."""
    response, status = success(data)
    set_session_cookie(response, get_services().tokens.issue(user_id))
    return response, status


def _session_user_id() -> str:
    """
    Resolve the session for /me and /refresh, which expire a bad cookie
    instead of leaving it in place.
    """
    token = get_session_token(request.headers)
    if not token:
        raise Unauthenticated("Not authenticated - no session cookie found")

    payload = get_services().tokens.verify(token)
    if not payload:
        raise Unauthenticated("Invalid or expired token", clear_session=True)
    return payload["userId"]


def _check_new_password(password: str, label: str = "Password") -> None:
    if len(password) < Config.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"{label} must be at least {Config.MIN_PASSWORD_LENGTH} characters long"
        )


# ============================================================================
# REGISTRATION + LOGIN
# ============================================================================


@bp.post("/register")
def register():
    """
    Create an account and start a session.

    Body:
        JSON: {"email": str, "password": str, "name": str}

    Returns:
        JSON: {"success": true, "data": UserPublic}
    """
    svc = get_services()
    body = parse_body(RegisterRequest)

    email = (body.email or "").strip()
    password = body.password or ""
    name = (body.name or "").strip()

    if not email or not password or not name:
        raise ValidationError("Email, password and name are required")
    _check_new_password(password)

    user = svc.users.create(email, name, svc.users.hash(password))
    return _signed_in(user.public(), user.id)


@bp.post("/login")
def login():
    """
    Sign in with email + password.

    Accounts still holding a plaintext password are upgraded to a bcrypt
    hash on the first successful login.
    """
    svc = get_services()
    body = parse_body(LoginRequest)

    email = (body.email or "").strip()
    password = body.password or ""
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = svc.users.authenticate(email, password)
    if user is None:
        raise InvalidCredentials()

    return _signed_in(user.public(), user.id)


@bp.post("/logout")
def logout():
    # Tokens are not tracked server-side; dropping the cookie is the logout.
    response, status = success(message="Logged out successfully")
    clear_session_cookie(response)
    return response, status


# ============================================================================
# SESSION
# ============================================================================


@bp.get("/me")
def me():
    user_id = _session_user_id()
    user = get_services().users.find_by_id(user_id)
    if user is None:
        raise NotFound("User not found", clear_session=True)
    return success(user.public())


@bp.get("/refresh")
def refresh():
    """Reissue the session cookie from a still-valid token."""
    user_id = _session_user_id()
    response, status = success(message="Token refreshed")
    set_session_cookie(response, get_services().tokens.issue(user_id))
    return response, status


# ============================================================================
# PROFILE
# ============================================================================


@bp.put("/user")
@require_auth
def update_user():
    """
    Update profile fields (name, preferences, ...).

    Email and password cannot be changed through this route.
    """
    user = get_services().users.update(g.user_id, json_body())
    return success(user.public())


@bp.put("/change-password")
@require_auth
def change_password():
    svc = get_services()
    body = parse_body(ChangePasswordRequest)

    current_password = body.current_password or ""
    new_password = body.new_password or ""
    if not current_password or not new_password:
        raise ValidationError("Current password and new password are required")
    _check_new_password(new_password, label="New password")

    user = svc.users.find_by_id(g.user_id)
    if user is None:
        raise NotFound("User not found")
    if not svc.users.check_password(user, current_password):
        raise ValidationError("Current password is incorrect")

    svc.users.set_password(user.id, svc.users.hash(new_password))
    return success(message="Password changed successfully")
