"""
Error taxonomy shared by the lifecycle core.

Every error carries a stable ``kind`` (the class) and, where useful, a
machine-checkable ``reason`` code. The core raises these; only the transport
layer catches them and maps ``kind`` to a status code.
"""

from enum import Enum


class Reason(str, Enum):
    # authorization
    NOT_OWNER = "NotOwner"
    NOT_VISIBLE = "NotVisible"
    ROLE_NOT_PERMITTED = "RoleNotPermitted"
    SELF_DELETE_FORBIDDEN = "SelfDeleteForbidden"
    ADMIN_EXEMPT = "AdminExempt"
    # lifecycle
    NOT_PENDING = "NotPending"
    NOT_DELETED = "NotDeleted"
    ALREADY_DELETED = "AlreadyDeleted"
    STATUS_NOT_ALLOWED = "StatusNotAllowed"
    # authentication
    UNAUTHENTICATED = "Unauthenticated"
    EXPIRED = "Expired"
    MALFORMED = "Malformed"
    INVALID_CREDENTIALS = "InvalidCredentials"
    ACCOUNT_SUSPENDED = "AccountSuspended"
    ACCOUNT_PENDING = "AccountPending"


class CollabError(Exception):
    kind = "Error"
    default_message = "An error occurred"

    def __init__(
        self,
        message: str | None = None,
        reason: Reason | None = None,
        errors: list[str] | None = None,
    ):
        self.message = message or self.default_message
        self.reason = reason
        self.errors = errors or []
        super().__init__(self.message)

    def __repr__(self) -> str:
        reason = self.reason.value if self.reason else None
        return f"{type(self).__name__}(message={self.message!r}, reason={reason!r})"


class ValidationError(CollabError):
    kind = "ValidationError"
    default_message = "Validation failed"


class NotFoundError(CollabError):
    kind = "NotFoundError"
    default_message = "Resource not found"


class RoleForbidden(CollabError):
    kind = "RoleForbidden"
    default_message = "Access forbidden"


class InvalidTransition(CollabError):
    kind = "InvalidTransition"
    default_message = "Transition not allowed from the current state"


class ConflictError(CollabError):
    kind = "ConflictError"
    default_message = "Resource conflict"


class ConfirmationRequired(CollabError):
    kind = "ConfirmationRequired"
    default_message = "Confirmation required"


class AuthError(CollabError):
    kind = "AuthError"
    default_message = "Authentication required"
