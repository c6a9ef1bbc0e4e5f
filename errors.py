"""
errors.py - Ledger Exceptions
Raised by the ledger, repository and policy layers and rendered as JSON by
the handler registered in app.py.
"""


class LedgerError(Exception):
    """Base class for errors surfaced to the request handler"""
    status_code = 500

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {'success': False, 'error': self.message}
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(LedgerError):
    """Malformed or out-of-range input. Nothing has been written."""
    status_code = 400


class NotFoundError(LedgerError):
    """A referenced assignment, student, course or submission does not exist."""
    status_code = 404


class ConsistencyError(LedgerError):
    """
    The grade write and its paired submission write did not both apply.
    The unit of work has been rolled back, so the caller may retry.
    """
    status_code = 409


class StorageError(LedgerError):
    """A database read or write failed underneath the repository."""
    status_code = 503


class PermissionDenied(LedgerError):
    status_code = 403
