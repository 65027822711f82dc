"""Error taxonomy for the complaint engine.

Every engine-level failure is a ComplaintError subclass so callers can catch the
family or a specific kind:

- ValidationError: missing or malformed input; nothing persisted
- NotFoundError: referenced complaint/department/officer does not exist
- InvalidTransition: status change violates the state machine
- NoDepartmentForCategory: configuration gap; complaint stays unassigned
- DependencyUnavailable: repository/media store failed or timed out
- PermissionDenied: actor role may not perform the operation
"""

from typing import Any, Dict, Optional


class ComplaintError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class ValidationError(ComplaintError):
    """Required field missing or input malformed."""


class NotFoundError(ComplaintError):
    """Referenced complaint, department or officer does not exist."""


class InvalidTransition(ComplaintError):
    """Requested status change is not allowed from the current status."""


class NoDepartmentForCategory(ComplaintError):
    """No configured department owns the complaint category."""


class PermissionDenied(ComplaintError):
    """Actor is not allowed to perform the operation."""


class DependencyUnavailable(ComplaintError):
    """A collaborator (repository, media store) call failed or timed out."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None, **context: Any):
        message = f"Dependency call '{operation}' failed"
        if cause is not None:
            message = f"{message}: {cause!r}"
        super().__init__(message, **context)
        self.operation = operation
        self.cause = cause
