"""Error types raised by the reward engine and its collaborators.

Route handlers let these propagate; ``main.py`` turns them into JSON
responses of the form ``{"code": ..., "message": ...}`` with the status
code carried by the exception class.
"""


class BookwormError(Exception):
    """Base class for errors surfaced to the caller."""

    status_code = 400
    code = "bad_request"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookwormError):
    """Malformed input such as a negative amount or blank title."""

    status_code = 422
    code = "validation_error"


class InvalidStateError(BookwormError):
    """A book was not in the state the operation requires."""

    status_code = 409
    code = "invalid_state"


class CollaboratorUnavailable(BookwormError):
    """The database or the book catalog failed or timed out."""

    status_code = 503
    code = "collaborator_unavailable"


class AuthorizationError(BookwormError):
    """The caller does not own the referenced entity."""

    status_code = 403
    code = "not_authorized"
