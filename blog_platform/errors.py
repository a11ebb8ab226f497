"""Typed failures raised by the workflows.

Each failure knows its HTTP status, a stable machine-readable `detail` code and a
human-readable message. The API layer turns them into JSON responses; nothing in
here leaks internal fault details.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class BlogError(Exception):
    status_code: int = 500
    detail: str = "internal_error"
    message: str = "Server error"

    def __init__(self, message: Optional[str] = None, *, field: Optional[str] = None):
        self.message = message or type(self).message
        self.field = field
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.detail, "message": self.message}
        if self.field:
            body["field"] = self.field
        return body


class ValidationError(BlogError):
    """Malformed or out-of-range input. `errors` enumerates every failing field."""

    status_code = 400
    detail = "validation_error"
    message = "Validation failed"

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None):
        self.errors = list(errors)
        if message is None:
            message = ", ".join(e["message"] for e in self.errors) or type(self).message
        super().__init__(message)

    @property
    def fields(self) -> List[str]:
        return [e["field"] for e in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["errors"] = self.errors
        return body


class DuplicateField(BlogError):
    status_code = 400
    detail = "duplicate_field"
    message = "User already exists"

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message, field=field)


class InvalidCredentials(BlogError):
    # Login failures are reported as 400 (bad request body), not 401.
    status_code = 400
    detail = "invalid_credentials"
    message = "Invalid credentials"

    def __init__(self, field: str):
        super().__init__(field=field)


class NoToken(BlogError):
    status_code = 401
    detail = "missing_token"
    message = "No token, authorization denied"


class TokenExpired(BlogError):
    status_code = 401
    detail = "token_expired"
    message = "Token expired"


class InvalidToken(BlogError):
    status_code = 401
    detail = "token_invalid"
    message = "Invalid token"


class UserGone(BlogError):
    status_code = 401
    detail = "user_not_found"
    message = "User no longer exists"


class Forbidden(BlogError):
    status_code = 403
    detail = "forbidden"
    message = "Not authorized"


class NotFound(BlogError):
    status_code = 404
    detail = "not_found"
    message = "Not found"


class UserNotFound(NotFound):
    detail = "user_not_found"
    message = "User not found"


class InvalidId(BlogError):
    status_code = 400
    detail = "invalid_id"
    message = "Invalid ID format"


class Internal(BlogError):
    status_code = 500
    detail = "internal_error"
    message = "Server error"


# 401 failures carry a WWW-Authenticate challenge.
AUTH_FAILURES = (NoToken, TokenExpired, InvalidToken, UserGone)
