"""
Error taxonomy shared by the store adapters and the HTTP layer.

Adapters raise these; the app's error handlers turn them into the
``{"success": false, "error": ...}`` envelope with the matching status.
"""

from __future__ import annotations


class NotesError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, *, clear_session: bool = False):
        self.message = message or self.default_message
        # Ask the error handler to expire the session cookie as well.
        self.clear_session = clear_session
        super().__init__(self.message)


class ValidationError(NotesError):
    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(NotesError):
    status_code = 401
    default_message = "Not authenticated"


class InvalidCredentials(Unauthenticated):
    default_message = "Invalid email or password"


class Forbidden(NotesError):
    status_code = 403
    default_message = "You do not have permission to access this resource"


class NotFound(NotesError):
    status_code = 404
    default_message = "Not found"


class ParentNotFound(NotFound):
    default_message = "Parent note not found"


class Conflict(NotesError):
    # Duplicate resources are reported as 400, not 409.
    status_code = 400
    default_message = "Resource already exists"


class DuplicateEmail(Conflict):
    default_message = "User with this email already exists"
