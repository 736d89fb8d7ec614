"""
Application error types.

ApiError subclasses carry the HTTP status and the error code used by the
uniform error envelope (see api/errors.py). Token errors are raised by the
token helpers in utils.security and are translated to UnauthorizedError by
their callers.
"""


class ApiError(Exception):
    status = 500
    error = "INTERNAL_ERROR"
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class BadRequestError(ApiError):
    status = 400
    error = "VALIDATION_ERROR"
    default_message = "Invalid input"


class UnauthorizedError(ApiError):
    status = 401
    error = "UNAUTHORIZED"
    default_message = "Unauthorized request"


class ConflictError(ApiError):
    status = 409
    error = "CONFLICT"
    default_message = "Conflict"


class InternalError(ApiError):
    pass


class InvalidTokenError(Exception):
    """Token failed signature, structure or type checks."""


class ExpiredTokenError(InvalidTokenError):
    """Token signature is fine but exp is in the past."""
