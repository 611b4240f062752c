"""
Domain exceptions.

Services raise these; the handler registered in main.py turns them into
JSON error responses:

    {"error": "roles_not_found", "message": "...", "missing": ["NOPE"]}
"""

from typing import Any


class AppError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code: int = 400
    error_code: str = "bad_request"

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error_code, "message": self.message, **self.extra}


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class AuthError(AppError):
    """Sign-in failed (bad OAuth state, provider error, bad credentials)."""

    status_code = 400
    error_code = "auth_error"


class RolesNotFound(AppError):
    """One or more requested role names do not exist."""

    status_code = 400
    error_code = "roles_not_found"

    def __init__(self, missing: list[str]):
        self.missing = sorted(missing)
        super().__init__(
            f"Roles not found: {', '.join(self.missing)}",
            missing=self.missing,
        )
