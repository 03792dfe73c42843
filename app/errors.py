"""Error taxonomy shared by services and routers.

Recoverable errors subclass ``ValueError`` and carry a machine-readable code
plus the HTTP status the routers answer with. ``StructuralFaultError`` marks
corrupted data and is never translated into a client error.
"""


class GoalServiceError(ValueError):
    """Base class for errors surfaced to the caller."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def detail(self) -> dict:
        """Structured error body for API responses."""
        return {"code": self.code, "message": self.message}


class NotFoundError(GoalServiceError):
    """Referenced entity does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class ForbiddenError(GoalServiceError):
    """Referenced entity belongs to a different owner."""

    code = "FORBIDDEN"
    status_code = 403


class InvalidArgumentError(GoalServiceError):
    """Request is malformed or violates a business rule."""

    code = "INVALID_ARGUMENT"
    status_code = 400


class UnauthorizedError(GoalServiceError):
    """Credentials are missing or invalid."""

    code = "UNAUTHORIZED"
    status_code = 401


class StructuralFaultError(RuntimeError):
    """Stored goal data violates a hierarchy invariant."""
