"""Domain error taxonomy.

Services raise these instead of HTTP exceptions so they stay usable outside a
request. ``main.py`` maps each class to its status code.
"""
from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    status_code: int = 400

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationFailed(DomainError):
    """Malformed or out-of-range input; ``field`` names the first offender."""
    status_code = 422


class NotFound(DomainError):
    """Entity absent or not owned by the caller."""
    status_code = 404


class Conflict(DomainError):
    status_code = 409


class PermissionDenied(DomainError):
    status_code = 403


__all__ = ["DomainError", "ValidationFailed", "NotFound", "Conflict", "PermissionDenied"]
