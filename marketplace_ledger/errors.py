"""
Ledger Error Taxonomy

Every business-rule failure is a distinct exception class carrying an
ErrorKind, so the boundary layer can branch on kind rather than message text.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """Classified failure kinds"""
    INVALID_INPUT = "invalid_input"            # Missing or malformed arguments
    UNAUTHORIZED = "unauthorized"              # Caller not a party / not self
    NOT_FOUND = "not_found"                    # Absent or hidden by authorization
    ALREADY_PAID = "already_paid"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    POLICY_VIOLATION = "policy_violation"      # Deposit exceeds cap
    STORE_ERROR = "store_error"                # Transaction or infrastructure failure


class LedgerError(Exception):
    """Base class for all classified ledger failures"""
    
    kind: ErrorKind = ErrorKind.STORE_ERROR
    
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
    
    def to_dict(self) -> Dict[str, Any]:
        result = {"error": self.kind.value, "detail": self.message}
        if self.context:
            result["context"] = self.context
        return result


class InvalidInputError(LedgerError, ValueError):
    kind = ErrorKind.INVALID_INPUT


class UnauthorizedError(LedgerError):
    kind = ErrorKind.UNAUTHORIZED


class NotFoundError(LedgerError):
    kind = ErrorKind.NOT_FOUND


class AlreadyPaidError(LedgerError):
    kind = ErrorKind.ALREADY_PAID


class InsufficientFundsError(LedgerError):
    kind = ErrorKind.INSUFFICIENT_FUNDS


class PolicyViolationError(LedgerError):
    kind = ErrorKind.POLICY_VIOLATION


class StoreError(LedgerError):
    kind = ErrorKind.STORE_ERROR


def require_id(value: Any, name: str) -> str:
    """Normalize an identifier to its string form, rejecting absent values"""
    if value is None or isinstance(value, bool):
        raise InvalidInputError(f"No {name} is provided")
    value = str(value).strip()
    if not value:
        raise InvalidInputError(f"No {name} is provided")
    return value
