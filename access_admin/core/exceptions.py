"""
Application error taxonomy.

Every error a handler can surface maps to one status code. Handlers in
main.py render them as ``{"error": message}``; ``details`` is added only for
validation failures.
"""

from typing import Any, Optional


class AppError(Exception):
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class Unauthenticated(AppError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class Forbidden(AppError):
    """Rule Engine denial or missing Administration membership. Message is shown verbatim."""
    status_code = 403


class MinimumAdminsViolation(Forbidden):
    """Raised by guarded store mutations when the Administration admin floor would be breached."""


class NotFound(AppError):
    status_code = 404


class ValidationFailed(AppError):
    status_code = 400


class Conflict(AppError):
    status_code = 409


class UpstreamError(AppError):
    """Identity provider or store failure. The message is internal; clients get a generic one."""
    status_code = 500
    public_message = "An unexpected error occurred"

    def to_dict(self) -> dict:
        return {"error": self.public_message}


class UpstreamTimeout(UpstreamError):
    status_code = 503
    public_message = "Upstream service timed out, please retry"
