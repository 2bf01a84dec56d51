"""Error taxonomy shared by the core services and the HTTP layer."""

from typing import Any, Dict


class LinkPageError(Exception):
    """Base exception for link-page errors."""

    status_code = 500
    error = "internal_error"

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.error, "message": self.message}


class ValidationError(LinkPageError):
    """Missing or malformed request fields."""

    status_code = 400
    error = "validation_error"


class IncorrectSequenceError(ValidationError):
    error = "incorrect_sequence"


class NotFoundError(LinkPageError):
    """Unknown or expired token or identifier."""

    status_code = 404
    error = "not_found"


class AuthorizationError(LinkPageError):
    """Signature mismatch or unbound/mismatched app key."""

    status_code = 403
    error = "not_authorized"


class StateError(LinkPageError):
    """Operation attempted out of lifecycle order."""

    status_code = 409
    error = "invalid_state"


class SequenceNotSolvedError(StateError):
    error = "sequence_not_solved"


class AlreadyVerifiedError(StateError):
    error = "already_verified"


class CredentialConflictError(StateError):
    error = "credential_conflict"


class AttemptsExhaustedError(StateError):
    status_code = 429
    error = "attempts_exhausted"


class UpstreamError(LinkPageError):
    """Storage or payment backend call failed."""

    status_code = 502
    error = "upstream_error"
