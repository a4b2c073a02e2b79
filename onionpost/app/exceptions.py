"""Domain error kinds raised by the service layer.

Routers never build HTTP responses for these directly; ``main.py`` registers a
single handler that maps each kind to its status code.
"""

from __future__ import annotations


class OnionPostError(Exception):
    """Base class for domain errors."""

    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(OnionPostError):
    """Raised when a profile, user, edge, community or post does not exist."""

    status_code = 404


class InvalidTarget(OnionPostError):
    """Raised when a profile tries to follow or close-friend itself."""

    status_code = 400


class InvalidReference(OnionPostError):
    """Raised when an identifier is not a well-formed profile or user id."""

    status_code = 400


class InvalidInput(OnionPostError):
    """Raised when a request value is well-formed but not acceptable."""

    status_code = 400


class Conflict(OnionPostError):
    """Raised when a unique username, email or community name is already taken."""

    status_code = 409


class Forbidden(OnionPostError):
    """Raised when the caller acts on a profile owned by another user."""

    status_code = 403


class PolicyDegraded(OnionPostError):
    """Internal signal that visibility data was unusable.

    Never leaves the visibility policy; it is logged and the view falls back to
    public disclosure.
    """


__all__ = [
    "Conflict",
    "Forbidden",
    "InvalidInput",
    "InvalidReference",
    "InvalidTarget",
    "NotFound",
    "OnionPostError",
    "PolicyDegraded",
]
