# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain error taxonomy: raised by repositories and services, mapped to HTTP
status codes at the controller boundary only.
"""


class RosterError(Exception):
    """Base class for every error raised by the roster core."""

    status_code: int = 500
    error_code: str = "internal_error"


class ValidationError(RosterError):
    """Malformed input: bad date/time/UUID, inverted intervals, invalid assignments."""

    status_code = 400
    error_code = "bad_request"


class NotFoundError(RosterError):
    """An identified roster, week, member or override does not exist."""

    status_code = 404
    error_code = "not_found"


class ConflictError(RosterError):
    """The operation would leave dependent rows dangling."""

    status_code = 409
    error_code = "conflict"


class PersistenceError(RosterError):
    """A database operation failed. Carries the operation that was attempted."""

    status_code = 500
    error_code = "internal_error"

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(f"{operation}: {cause}")
        self.operation = operation
        self.__cause__ = cause


class OperationCancelled(RosterError):
    """The caller's cancellation token fired or its deadline passed."""

    status_code = 503
    error_code = "cancelled"
