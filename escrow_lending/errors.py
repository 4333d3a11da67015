"""
Error Codes and Results

Stable numeric error codes shared with every caller built against the lending
contract, the exception raised by validation checks, and the tagged result
returned by the public API.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Generic, Optional, TypeVar


T = TypeVar("T")


class ErrorCode(IntEnum):
    """Lending contract error codes"""
    NOT_AUTHORIZED = 100
    INVALID_POOL_ID = 101
    INVALID_PROPOSAL_ID = 102
    INVALID_AMOUNT = 103
    INVALID_STATUS = 104
    LOAN_NOT_APPROVED = 105
    INSUFFICIENT_FUNDS = 106
    ESCROW_ALREADY_EXISTS = 107
    NOT_FOUND = 108
    INVALID_TIMESTAMP = 109
    INVALID_BORROWER = 110
    REPAYMENT_INCOMPLETE = 112
    MAX_LOANS_EXCEEDED = 113
    INVALID_ESCROW_DURATION = 114
    INVALID_INTEREST_RATE = 115
    INVALID_GRACE_PERIOD = 116
    INVALID_ORACLE = 118
    IMPACT_NOT_VERIFIED = 119
    INVALID_CURRENCY = 120


class LendingError(Exception):
    """Raised when a disbursement or release rule rejects a call"""

    def __init__(self, code: ErrorCode, message: Optional[str] = None):
        self.code = code
        super().__init__(message or code.name)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Success-with-value or failure-with-error-code"""
    ok: bool
    value: Optional[T] = None
    error: Optional[ErrorCode] = None

    @classmethod
    def success(cls, value: T) -> 'Result[T]':
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: ErrorCode) -> 'Result[T]':
        return cls(ok=False, error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried error"""
        if not self.ok:
            raise LendingError(self.error)
        return self.value
