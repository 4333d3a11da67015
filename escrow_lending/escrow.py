"""
Escrow Release Engine Module

Releases a loan's escrowed principal to its borrower once the escrow has
matured, repayment is complete and the impact oracle has verified the
proposal's outcome.
"""

from typing import Optional

from .audit import AuditTrail, AuditEventType
from .config import ContractState
from .errors import ErrorCode, LendingError
from .logging_config import get_logger, log_action
from .ports import ImpactOracle, LedgerTransferPort, RepaymentOracle
from .store import LoanEscrowStore
from .validation import Check, run_checks


class EscrowReleaseEngine:
    """
    Moves held funds out of custody and marks the escrow terminal
    """

    def __init__(
        self,
        state: ContractState,
        store: LoanEscrowStore,
        repayments: RepaymentOracle,
        impacts: ImpactOracle,
        ledger: LedgerTransferPort,
        audit_trail: Optional[AuditTrail] = None
    ):
        self.state = state
        self.store = store
        self.repayments = repayments
        self.impacts = impacts
        self.ledger = ledger
        self.audit_trail = audit_trail
        self.logger = get_logger("escrow_lending.escrow")

    def release(self, loan_id: int, caller: str, current_time: int) -> bool:
        """
        Release the escrow of a loan to its borrower

        Args:
            loan_id: Loan whose escrow is released
            caller: Identity invoking the release; must be the borrower
            current_time: Logical time (block height) of the call

        Returns:
            True once funds are transferred and both records are updated

        Raises:
            LendingError: if any check fails or the custody transfer is refused
        """
        loan = self.store.get_loan(loan_id)
        escrow = self.store.get_escrow(loan_id)

        run_checks([
            Check("loan_exists", lambda: loan is not None, ErrorCode.NOT_FOUND),
            Check("escrow_exists", lambda: escrow is not None, ErrorCode.NOT_FOUND),
            Check("borrower", lambda: caller == loan.borrower, ErrorCode.NOT_AUTHORIZED),
            Check("not_released", lambda: not escrow.released, ErrorCode.INVALID_STATUS),
            Check("matured", lambda: escrow.is_mature(current_time), ErrorCode.INVALID_TIMESTAMP),
            Check("repayment", lambda: self.repayments.is_repayment_complete(loan_id),
                  ErrorCode.REPAYMENT_INCOMPLETE),
            Check("oracle_registered", lambda: self.state.has_oracle, ErrorCode.INVALID_ORACLE),
            Check("impact", lambda: self.impacts.is_impact_verified(loan.proposal_id),
                  ErrorCode.IMPACT_NOT_VERIFIED),
        ], self.logger)

        with self.store.storage.atomic():
            escrow.released = True
            loan.impact_verified = True
            self.store.update_pair(loan, escrow)

            if self.audit_trail:
                self.audit_trail.log_event(
                    event_type=AuditEventType.ESCROW_RELEASED,
                    entity_type="loan",
                    entity_id=str(loan_id),
                    user_id=caller,
                    metadata={
                        "held_amount": escrow.held_amount,
                        "released_at": current_time,
                        "oracle": self.state.oracle_contract
                    }
                )

            if not self.ledger.transfer_from_custody(escrow.held_amount, loan.borrower):
                raise LendingError(ErrorCode.INSUFFICIENT_FUNDS, "Custody transfer refused")

        log_action(
            self.logger, "info", f"Escrow for loan {loan_id} released",
            user_id=caller, action="release_escrow", resource=f"loan:{loan_id}",
            extra={"held_amount": escrow.held_amount, "released_at": current_time}
        )
        return True
