"""
Domain error taxonomy.

Services raise these instead of HTTPException so they stay usable outside
a request. main.py installs one handler that turns any DashboardError into
a ``{"detail": ...}`` response with the error's status code.
"""


class DashboardError(Exception):
    """Base class for every error the attendance core reports to callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(DashboardError):
    """Missing, malformed or expired bearer credential."""
    status_code = 401


class NotFound(DashboardError):
    """No student with the requested id."""
    status_code = 404


class Conflict(DashboardError):
    """Duplicate student id, or a write that kept losing revision races."""
    status_code = 409


class InvalidArgument(DashboardError):
    """Input rejected before any mutation took place."""
    status_code = 400


class InternalError(DashboardError):
    """Backing store failure (connection loss, timeout)."""
    status_code = 500
