# app/core/exceptions.py
# Error taxonomy shared by services and endpoints.
#
# Services raise these; app/main.py renders them as JSON:
#   {"detail": "<message>", "code": "<CODE>"}
#
# Usage:
#   from app.core.exceptions import NotFound, Conflict
#
#   if not req:
#       raise NotFound("Tutoring request not found.")

from typing import Any, Dict


class FreeTutorError(Exception):
    """Base exception for all FreeTutor business errors."""

    status_code: int = 500
    code: str = "INTERNAL"

    def __init__(self, message: str = "An unexpected error occurred."):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class InvalidInput(FreeTutorError):
    """Missing or malformed fields."""
    status_code = 400
    code = "INVALID_INPUT"


class Unauthenticated(FreeTutorError):
    """No valid session / bearer token."""
    status_code = 401
    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Authentication required. Please log in."):
        super().__init__(message)


class Forbidden(FreeTutorError):
    """Authenticated but not entitled: wrong role, unapproved profile, non-owner."""
    status_code = 403
    code = "FORBIDDEN"


class NotFound(FreeTutorError):
    """Referenced entity absent or not visible to the caller."""
    status_code = 404
    code = "NOT_FOUND"


class Conflict(FreeTutorError):
    """State precondition violated: duplicate application, request not open."""
    status_code = 409
    code = "CONFLICT"


class Internal(FreeTutorError):
    status_code = 500
    code = "INTERNAL"
