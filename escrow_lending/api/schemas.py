"""
Pydantic schemas for API requests and responses
"""

from typing import Optional
from pydantic import BaseModel, Field

from ..loans import Loan, Escrow


class DisburseLoanRequest(BaseModel):
    # Ranges are enforced by the disbursement checks so callers see contract error codes
    pool_id: int
    proposal_id: int
    amount: int
    escrow_duration: int
    interest_rate: int
    grace_period: int
    currency: str = Field(..., description="Currency code (STX, USD, BTC)")
    current_time: int = Field(..., ge=0, description="Logical time (block height)")


class ReleaseEscrowRequest(BaseModel):
    current_time: int = Field(..., ge=0, description="Logical time (block height)")


class RegisterOracleRequest(BaseModel):
    address: str = Field(..., min_length=1, description="Oracle contract identity")


class LoanModel(BaseModel):
    id: int
    pool_id: int
    proposal_id: int
    borrower: str
    amount: int
    status: str
    disbursement_time: int
    escrow_duration: int
    interest_rate: int
    grace_period: int
    currency: str
    impact_verified: bool

    @classmethod
    def from_loan(cls, loan: Loan) -> 'LoanModel':
        return cls(**loan.to_dict())


class EscrowModel(BaseModel):
    loan_id: int
    held_amount: int
    release_time: int
    released: bool

    @classmethod
    def from_escrow(cls, escrow: Escrow) -> 'EscrowModel':
        return cls(**escrow.to_dict())


class ContractStateModel(BaseModel):
    max_loans: int
    escrow_fee: int
    governance_contract: str
    repayment_contract: str
    pool_contract: str
    reserved_identity: str
    custody_identity: str
    oracle_contract: Optional[str] = None
    loan_count: int
