"""
Error taxonomy for the fee and compliance engine.

Services raise these; the API layer renders them as
{"success": false, "error": ..., "details": ...} with the carried status code.
"""

from typing import Optional


class BackOfficeError(Exception):
    """Base class for all engine errors."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, error: Optional[str] = None, details: Optional[str] = None):
        self.error = error or self.error
        self.details = details
        super().__init__(self.error if details is None else f"{self.error}: {details}")


# ===== Input errors (no ledger access) =====

class MissingParameter(BackOfficeError):
    status_code = 400
    error = "Missing required parameters"


class InvalidParameter(BackOfficeError):
    status_code = 400
    error = "Invalid parameters"


class UnknownFeeType(BackOfficeError):
    status_code = 400
    error = "Invalid fee type"


class UnknownCheckType(BackOfficeError):
    status_code = 400
    error = "Invalid check type"


# ===== Authorization =====

class Unauthenticated(BackOfficeError):
    status_code = 401
    error = "Unauthorized"


class Forbidden(BackOfficeError):
    status_code = 403
    error = "Forbidden"


# ===== Not found / state =====

class AccountNotFound(BackOfficeError):
    status_code = 404
    error = "Account not found or no access"


class FeeNotFound(BackOfficeError):
    status_code = 404
    error = "Fee not found"


class AccountInactive(BackOfficeError):
    status_code = 409
    error = "Account is not active"


class FeeAlreadyPaid(BackOfficeError):
    status_code = 409
    error = "Fee is already marked as paid"


# ===== Computation =====

class ComputationFailed(BackOfficeError):
    status_code = 500
    error = "Internal server error"


class LedgerTimeout(BackOfficeError):
    """Raised by the ledger when the request-scoped deadline has passed."""
    status_code = 500
    error = "Ledger operation timed out"
