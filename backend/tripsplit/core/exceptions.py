"""
Domain errors raised by the ledger services.

Each error carries the HTTP status the API layer answers with.
"""
from fastapi import status


class LedgerError(Exception):
    """Base class for typed ledger failures."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LedgerError):
    """Referenced trip, participant, expense or settlement does not exist."""
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(LedgerError):
    """Actor is not the trip owner or not a trip member."""
    status_code = status.HTTP_403_FORBIDDEN


class BadRequestError(LedgerError):
    """Invalid input for a ledger operation."""
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(LedgerError):
    """A concurrent modification was detected and the transaction rolled back."""
    status_code = status.HTTP_409_CONFLICT
