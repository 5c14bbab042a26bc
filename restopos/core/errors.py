class PosError(Exception):
    """Base class for failures raised by the POS services.

    `status_code` is the HTTP status the API layer answers with.
    """

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PosError):
    """Malformed or out-of-range input. Not retried."""

    status_code = 422


class ConflictError(PosError):
    """A state-transition precondition does not hold (closed order, voided item)."""

    status_code = 409


class NotFoundError(PosError):
    """A referenced menu, order or item does not exist."""

    status_code = 404


class TransientError(PosError):
    """Network/connectivity failure on the client; the request stays queued."""

    status_code = 503
