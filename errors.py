"""
Error types shared by the store helpers and the HTTP layer.

Every error carries the HTTP status it maps to; the handlers in ``main.py``
render them as ``{"message": ...}``.
"""

from __future__ import annotations


class StoreError(Exception):
    status_code = 500
    code = "SERVER_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ValidationError(StoreError):
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthError(StoreError):
    status_code = 401
    code = "AUTH_ERROR"


class ForbiddenError(AuthError):
    status_code = 403
    code = "FORBIDDEN"


class NotFound(StoreError):
    status_code = 404
    code = "NOT_FOUND"


class Conflict(StoreError):
    status_code = 400
    code = "CONFLICT"


class Expired(StoreError):
    status_code = 400
    code = "EXPIRED"


class LimitExceeded(StoreError):
    status_code = 400
    code = "LIMIT_EXCEEDED"
