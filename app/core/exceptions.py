"""
Error taxonomy for the ledger core.

Every failure the engine reports carries a fixed ``LedgerErrorKind``.
Callers branch on ``error.kind``; the message is for logs only.
"""
import enum
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse


class LedgerErrorKind(str, enum.Enum):
    """Enumerated failure kinds surfaced by the ledger"""
    NO_OVERDRAFT = "NO_OVERDRAFT"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_PAGINATION = "INVALID_PAGINATION"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    ACCOUNT_NOT_ACTIVE = "ACCOUNT_NOT_ACTIVE"
    IDEMPOTENCY_CONFLICT = "IDEMPOTENCY_CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# HTTP status for each kind, used by the routing layer
HTTP_STATUS_BY_KIND = {
    LedgerErrorKind.NO_OVERDRAFT: 422,
    LedgerErrorKind.INVALID_AMOUNT: 422,
    LedgerErrorKind.INVALID_PAGINATION: 422,
    LedgerErrorKind.ACCOUNT_NOT_FOUND: 404,
    LedgerErrorKind.ACCOUNT_NOT_ACTIVE: 409,
    LedgerErrorKind.IDEMPOTENCY_CONFLICT: 409,
    LedgerErrorKind.INTERNAL_ERROR: 500,
}


class LedgerError(Exception):
    """
    Raised by the ledger services.

    The unit of work that raised it has already been rolled back.
    """

    def __init__(
        self,
        kind: LedgerErrorKind,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message or kind.value)
        self.kind = kind
        self.message = message or kind.value
        self.details = details or {}

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def __str__(self) -> str:
        if self.details:
            return f"{self.kind.value}: {self.message} | Details: {self.details}"
        return f"{self.kind.value}: {self.message}"


def error_response(error: LedgerError) -> JSONResponse:
    """Map a ledger error onto its status code; only the kind is exposed"""
    return JSONResponse(status_code=error.status_code, content={"error": error.kind.value})
