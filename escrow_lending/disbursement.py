"""
Disbursement Engine Module

Validates a disbursement request against the contract state and the external
approval and ledger ports, then creates the loan and its escrow and moves the
principal from the pool into custody as one atomic unit.
"""

from dataclasses import dataclass
from typing import List, Optional, Union

from .audit import AuditTrail, AuditEventType
from .config import ContractState
from .currency import Currency, parse_currency
from .errors import ErrorCode, LendingError
from .loans import Loan, Escrow, LoanStatus
from .logging_config import get_logger, log_action
from .ports import ApprovalOracle, LedgerTransferPort
from .store import LoanEscrowStore
from .validation import Check, run_checks


MAX_ESCROW_DURATION = 365
MAX_INTEREST_RATE = 15
MAX_GRACE_PERIOD = 30


@dataclass(frozen=True)
class DisbursementRequest:
    """Parameters of a disbursement as supplied by the caller"""
    pool_id: int
    proposal_id: int
    amount: int
    escrow_duration: int
    interest_rate: int
    grace_period: int
    currency: Union[str, Currency]


class DisbursementEngine:
    """
    Creates paired loan/escrow records for approved proposals
    """

    def __init__(
        self,
        state: ContractState,
        store: LoanEscrowStore,
        approvals: ApprovalOracle,
        ledger: LedgerTransferPort,
        audit_trail: Optional[AuditTrail] = None
    ):
        self.state = state
        self.store = store
        self.approvals = approvals
        self.ledger = ledger
        self.audit_trail = audit_trail
        self.logger = get_logger("escrow_lending.disbursement")

    def _checks(self, request: DisbursementRequest, caller: str) -> List[Check]:
        return [
            Check("capacity", lambda: self.store.loan_count() < self.state.max_loans,
                  ErrorCode.MAX_LOANS_EXCEEDED),
            Check("pool_id", lambda: request.pool_id > 0, ErrorCode.INVALID_POOL_ID),
            Check("proposal_id", lambda: request.proposal_id > 0, ErrorCode.INVALID_PROPOSAL_ID),
            Check("amount", lambda: request.amount > 0, ErrorCode.INVALID_AMOUNT),
            Check("escrow_duration", lambda: 0 < request.escrow_duration <= MAX_ESCROW_DURATION,
                  ErrorCode.INVALID_ESCROW_DURATION),
            Check("interest_rate", lambda: 0 <= request.interest_rate <= MAX_INTEREST_RATE,
                  ErrorCode.INVALID_INTEREST_RATE),
            Check("grace_period", lambda: 0 <= request.grace_period <= MAX_GRACE_PERIOD,
                  ErrorCode.INVALID_GRACE_PERIOD),
            Check("currency", lambda: parse_currency(request.currency) is not None,
                  ErrorCode.INVALID_CURRENCY),
            Check("borrower", lambda: caller != self.state.reserved_identity,
                  ErrorCode.INVALID_BORROWER),
            Check("approval", lambda: self.approvals.is_proposal_approved(request.proposal_id),
                  ErrorCode.LOAN_NOT_APPROVED),
            Check("pool_balance", lambda: self.ledger.get_pool_balance(request.pool_id) >= request.amount,
                  ErrorCode.INSUFFICIENT_FUNDS),
        ]

    def disburse(self, request: DisbursementRequest, caller: str, current_time: int) -> int:
        """
        Disburse a loan to the caller

        Args:
            request: Loan parameters
            caller: Identity of the borrower invoking the disbursement
            current_time: Logical time (block height) of the call

        Returns:
            The new loan id

        Raises:
            LendingError: if any check fails or the pool transfer is refused;
                no loan, escrow or counter change is left behind
        """
        run_checks(self._checks(request, caller), self.logger)

        with self.store.storage.atomic():
            loan_id = self.store.next_loan_id
            loan = Loan(
                id=loan_id,
                pool_id=request.pool_id,
                proposal_id=request.proposal_id,
                borrower=caller,
                amount=request.amount,
                disbursement_time=current_time,
                escrow_duration=request.escrow_duration,
                interest_rate=request.interest_rate,
                grace_period=request.grace_period,
                currency=parse_currency(request.currency),
                status=LoanStatus.ACTIVE,
                impact_verified=False
            )
            escrow = Escrow(
                loan_id=loan_id,
                held_amount=request.amount,
                release_time=current_time + request.escrow_duration,
                released=False
            )
            self.store.insert_pair(loan, escrow)

            if self.audit_trail:
                self.audit_trail.log_event(
                    event_type=AuditEventType.LOAN_DISBURSED,
                    entity_type="loan",
                    entity_id=str(loan_id),
                    user_id=caller,
                    metadata={
                        "pool_id": loan.pool_id,
                        "proposal_id": loan.proposal_id,
                        "amount": loan.amount,
                        "currency": loan.currency,
                        "release_time": escrow.release_time
                    }
                )

            # Transfer last: a refused transfer rolls back the records above
            if not self.ledger.transfer_from_pool(request.pool_id, request.amount,
                                                  self.state.custody_identity):
                raise LendingError(ErrorCode.INSUFFICIENT_FUNDS, "Pool transfer refused")

        log_action(
            self.logger, "info", f"Loan {loan_id} disbursed",
            user_id=caller, action="disburse_loan", resource=f"loan:{loan_id}",
            extra={
                "pool_id": loan.pool_id,
                "proposal_id": loan.proposal_id,
                "amount": loan.amount,
                "release_time": escrow.release_time
            }
        )
        return loan_id
