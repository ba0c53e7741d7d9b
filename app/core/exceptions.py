"""Domain errors raised by the service layer.

Routers never catch these; ``app.main`` maps each kind to an HTTP status.
Database errors are deliberately not part of this hierarchy.
"""
from typing import Iterable, Optional


class SimsarError(Exception):
    """Base exception for the marketplace domain."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SimsarError):
    """Missing or malformed required field(s)."""

    status_code = 400

    def __init__(self, message: str, fields: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.fields = list(fields or [])


class ConflictError(SimsarError):
    """The operation would duplicate something that must be unique."""

    status_code = 409


class InvalidTransitionError(SimsarError):
    """A status change that the workflow does not allow."""

    status_code = 409


class NotFoundError(SimsarError):
    """Unknown broker, request, listing or other entity."""

    status_code = 404
