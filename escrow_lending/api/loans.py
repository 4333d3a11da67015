"""
Loan disbursement and escrow release endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, status

from .dependencies import get_caller, get_lending_system, raise_for_error
from .schemas import DisburseLoanRequest, ReleaseEscrowRequest, LoanModel, EscrowModel
from ..system import LendingSystem


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def disburse_loan(
    request: DisburseLoanRequest,
    caller: str = Depends(get_caller),
    system: LendingSystem = Depends(get_lending_system)
):
    """Disburse a loan to the caller and escrow its principal"""
    result = system.disburse_loan(
        pool_id=request.pool_id,
        proposal_id=request.proposal_id,
        amount=request.amount,
        escrow_duration=request.escrow_duration,
        interest_rate=request.interest_rate,
        grace_period=request.grace_period,
        currency=request.currency,
        caller=caller,
        current_time=request.current_time
    )
    raise_for_error(result)

    return {
        "loan_id": result.value,
        "message": "Loan disbursed successfully"
    }


@router.get("")
async def list_loans(
    borrower: Optional[str] = None,
    system: LendingSystem = Depends(get_lending_system)
):
    """List loans, optionally for one borrower"""
    loans = system.list_loans(borrower)
    return {"loans": [LoanModel.from_loan(loan).model_dump() for loan in loans]}


@router.get("/count")
async def get_loan_count(system: LendingSystem = Depends(get_lending_system)):
    """Number of loans ever disbursed"""
    return {"count": system.get_loan_count().value}


@router.get("/{loan_id}", response_model=LoanModel)
async def get_loan(
    loan_id: int,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get loan details"""
    result = system.get_loan(loan_id)
    raise_for_error(result)
    return LoanModel.from_loan(result.value)


@router.get("/{loan_id}/escrow", response_model=EscrowModel)
async def get_escrow(
    loan_id: int,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get the escrow held for a loan"""
    result = system.get_escrow(loan_id)
    raise_for_error(result)
    return EscrowModel.from_escrow(result.value)


@router.post("/{loan_id}/release")
async def release_escrow(
    loan_id: int,
    request: ReleaseEscrowRequest,
    caller: str = Depends(get_caller),
    system: LendingSystem = Depends(get_lending_system)
):
    """Release a matured, repaid and impact-verified escrow to its borrower"""
    result = system.release_escrow(loan_id, caller, request.current_time)
    raise_for_error(result)

    return {
        "loan_id": loan_id,
        "released": True,
        "message": "Escrow released successfully"
    }
