"""Typed failures raised by the proposal core.

Each error carries a stable ``code`` and the HTTP ``status_code`` the API
layer renders it with. Nothing in the core returns a silent no-op in place of
one of these.
"""

from typing import Any, Optional


class ProposalError(Exception):
    """Base class for every failure surfaced to callers of the proposal core."""

    status_code: int = 500
    code: str = "proposal_error"
    default_message: str = "Unexpected proposal error"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": False, "error": self.code, "detail": self.message}


class NotFoundError(ProposalError):
    """Unknown proposal, business or notification."""

    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class ForbiddenError(ProposalError):
    """Actor is not a participant of the proposal."""

    status_code = 403
    code = "forbidden"
    default_message = "Not a participant of this proposal"


class InvalidTransitionError(ProposalError):
    """Action is not legal from the current status / awaiting party."""

    status_code = 400
    code = "invalid_transition"
    default_message = "Action not allowed in the current state"

    def __init__(self, status, action, role, reason: str):
        self.status = status
        self.action = action
        self.role = role
        self.reason = reason
        super().__init__(
            f"Cannot {action.value} a proposal in {status.value} as {role.value}: {reason}",
            status=status.value,
            action=action.value,
            role=role.value,
        )


class ProposalValidationError(ProposalError):
    """Malformed or incomplete input, e.g. an invalid KPI row or empty report reason."""

    status_code = 422
    code = "validation_error"
    default_message = "Invalid proposal input"


class ConflictError(ProposalError):
    """A concurrent mutation of the same proposal won the race."""

    status_code = 409
    code = "conflict"
    default_message = "This proposal was just updated, please refresh"


class UnavailableError(ProposalError):
    """A collaborator (directory, persistence) failed transiently."""

    status_code = 503
    code = "unavailable"
    default_message = "Service temporarily unavailable"
