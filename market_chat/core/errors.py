"""Domain errors raised by the chat and offer services.

Services raise these instead of ``HTTPException`` so the realtime gateway
can handle the same failures without an HTTP context. ``main.py`` maps them
to JSON responses using ``status_code``.
"""


class AppError(Exception):
    """Base class for errors that carry an HTTP status."""

    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInputError(AppError):
    """Malformed or missing request field."""

    status_code = 400


class InvalidOperationError(AppError):
    """Well-formed request that the current state does not allow."""

    status_code = 400


class UnauthenticatedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class DuplicateOfferError(ConflictError):
    """The buyer already has a PENDING offer on the listing."""


class OfferNotPendingError(ConflictError):
    """The offer was already accepted or rejected.

    The accept/reject endpoints answer this with 400, as the web client
    expects.
    """

    status_code = 400
