class DrmsError(Exception):
    """Base class for errors reported to the caller with a readable reason."""

    status_code = 500
    code = "error"

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class NotFound(DrmsError):
    status_code = 404
    code = "not_found"


class Forbidden(DrmsError):
    status_code = 403
    code = "forbidden"


class InvalidState(DrmsError):
    """Guard violation on the assignment / request lifecycle."""

    status_code = 409
    code = "invalid_state"


class ValidationError(DrmsError):
    status_code = 400
    code = "validation_error"


class DependencyFailure(DrmsError):
    """Store or file store failed while applying a transition."""

    status_code = 503
    code = "dependency_failure"
