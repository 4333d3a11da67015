"""
Loan Module

Loan and escrow records. A loan is the disbursed credit line; its escrow holds
the principal in custody until the release conditions are jointly satisfied.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict
from enum import Enum

from .currency import Currency


class LoanStatus(Enum):
    """Loan lifecycle states"""
    ACTIVE = "active"  # Funds disbursed, principal held in escrow


@dataclass
class Loan:
    """One disbursed credit line"""
    id: int
    pool_id: int
    proposal_id: int
    borrower: str
    amount: int
    disbursement_time: int              # Logical time (block height) at creation
    escrow_duration: int                # Blocks the principal stays in escrow
    interest_rate: int                  # Informational, percent
    grace_period: int
    currency: Currency
    status: LoanStatus = LoanStatus.ACTIVE
    impact_verified: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['currency'] = self.currency.value
        result['status'] = self.status.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Loan':
        data = dict(data)
        data['currency'] = Currency(data['currency'])
        data['status'] = LoanStatus(data['status'])
        return cls(**data)


@dataclass
class Escrow:
    """Principal held in custody for a loan, keyed by the loan id"""
    loan_id: int
    held_amount: int
    release_time: int
    released: bool = False

    def is_mature(self, current_time: int) -> bool:
        """Check whether the escrow duration has elapsed"""
        return current_time >= self.release_time

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Escrow':
        return cls(**data)
