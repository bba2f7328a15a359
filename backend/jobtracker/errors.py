"""
Application Error Taxonomy

Every business-rule failure is raised as an AppError subclass and mapped
to an HTTP response by the handlers registered in main.py:

    AppError
    ├── ValidationError          400
    ├── AuthenticationError      401
    │   ├── InvalidCredentials
    │   ├── NotLoggedIn
    │   ├── AuthenticationFailed
    │   └── CsrfMismatch         403
    ├── AuthorizationError       403
    ├── NotFoundError            404
    ├── ConflictError            409
    │   └── DuplicateEmail       400
    ├── TerminalStateViolation   400
    ├── StatusLimitExceeded      400
    └── UpstreamServiceError     502 (503 when unconfigured)

Messages for authentication failures are deliberately generic.
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message}


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Not authenticated"


class InvalidCredentials(AuthenticationError):
    default_message = "Invalid credentials"


class NotLoggedIn(AuthenticationError):
    default_message = "Not logged in"


class AuthenticationFailed(AuthenticationError):
    default_message = "Authentication failed"


class CsrfMismatch(AuthenticationError):
    status_code = 403
    default_message = "Invalid CSRF token"


class AuthorizationError(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


class DuplicateEmail(ConflictError):
    status_code = 400
    default_message = "Email already registered"


class TerminalStateViolation(AppError):
    status_code = 400
    default_message = "Status cannot be changed from a terminal state"


class StatusLimitExceeded(AppError):
    status_code = 400
    default_message = "Custom status limit reached"


class UpstreamServiceError(AppError):
    status_code = 502
    default_message = "AI service request failed, please retry later"

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "retryable": True}
