"""
Domain error hierarchy

Every error raised by a service is a ShiftbookError. Each class carries the
HTTP status the API layer answers with and a stable machine-readable code.
Finalize gate failures are not errors; see FinalizeCheck.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import status


class ShiftbookError(Exception):
    """Base class for all domain errors"""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "SHIFTBOOK_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class ValidationError(ShiftbookError):
    """Missing or invalid input, rejected before any write"""

    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT
    code = "VALIDATION_ERROR"


class InvalidAmount(ValidationError):
    code = "INVALID_AMOUNT"


class StateConflict(ShiftbookError):
    """Operation conflicts with the current persisted state"""

    status_code = status.HTTP_409_CONFLICT
    code = "STATE_CONFLICT"


class AlreadyActive(StateConflict):
    code = "ALREADY_ACTIVE"


class NotFound(StateConflict):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ShiftNotActive(StateConflict):
    code = "SHIFT_NOT_ACTIVE"


class CashierNotActive(StateConflict):
    code = "CASHIER_NOT_ACTIVE"


class NoActiveCashier(StateConflict):
    code = "NO_ACTIVE_CASHIER"


class DuplicateEarning(StateConflict):
    code = "DUPLICATE_EARNING"


class StoreFailure(ShiftbookError):
    """The store failed mid-operation; the whole operation was rolled back"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "STORE_FAILURE"


@dataclass(frozen=True)
class FinalizeCheck:
    """Outcome of the end-of-day precondition gate"""

    ok: bool
    reason: Optional[str] = None

    @classmethod
    def passed(cls) -> "FinalizeCheck":
        return cls(ok=True)

    @classmethod
    def blocked(cls, reason: str) -> "FinalizeCheck":
        return cls(ok=False, reason=reason)
