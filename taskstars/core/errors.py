"""
Domain errors raised by the services layer.

Every error carries the HTTP status the API layer renders it with and a
user-facing ``detail`` message. Routes let these propagate; the handler
registered in ``main.py`` turns them into JSON responses.
"""


class DomainError(Exception):
    status_code = 400
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(DomainError):
    status_code = 404
    default_detail = "Not found"


class Unauthorized(DomainError):
    status_code = 401
    default_detail = "Authentication required"


class Forbidden(DomainError):
    status_code = 403
    default_detail = "Insufficient permissions"


class Conflict(DomainError):
    status_code = 409
    default_detail = "Conflicts with the current state"


class InvalidTransition(Conflict):
    default_detail = "Transition not allowed from the current state"


class AlreadyCompleted(InvalidTransition):
    default_detail = "Task is already completed"


class AlreadyClaimed(Conflict):
    default_detail = "Bonus already claimed"


class NotEligible(DomainError):
    status_code = 400
    default_detail = "Not eligible for this bonus yet"


class InsufficientPoints(Conflict):
    default_detail = "Not enough points"


class ValidationError(DomainError):
    status_code = 400
    default_detail = "Invalid input"


class TransactionFailed(DomainError):
    status_code = 503
    default_detail = "The operation could not be saved, please retry"
