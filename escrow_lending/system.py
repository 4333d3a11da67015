"""
Lending System Module

Wires the contract state, store, ports, engines and audit trail together and
exposes the public API. Every call is serialized and returns a tagged Result.
"""

import threading
from typing import Any, Dict, List, Optional, Union

from .audit import AuditTrail, AuditEventType
from .config import ContractState, EscrowLendingConfig, get_config
from .currency import Currency
from .disbursement import DisbursementEngine, DisbursementRequest
from .errors import ErrorCode, LendingError, Result
from .escrow import EscrowReleaseEngine
from .loans import Loan, Escrow
from .logging_config import get_logger, log_action
from .oracle_client import OracleServiceClient
from .ports import (
    ApprovalOracle, ImpactOracle, InMemoryOracle, LedgerTransferPort,
    RepaymentOracle, StorageLedger
)
from .storage import StorageInterface, create_storage
from .store import LoanEscrowStore


class LendingSystem:
    """Escrowed loan disbursement system with all components initialized"""

    def __init__(
        self,
        storage: StorageInterface,
        state: ContractState,
        ledger: LedgerTransferPort,
        approvals: ApprovalOracle,
        repayments: RepaymentOracle,
        impacts: ImpactOracle,
        enable_audit_logging: bool = True
    ):
        self.storage = storage
        self.state = state
        self.ledger = ledger
        self.approvals = approvals
        self.repayments = repayments
        self.impacts = impacts
        self.store = LoanEscrowStore(storage)
        self.audit_trail = AuditTrail(storage) if enable_audit_logging else None
        self.logger = get_logger("escrow_lending.system")
        self._lock = threading.RLock()
        self.contract_state_table = "contract_state"
        self._restore_oracle_contract()

        self.disbursement_engine = DisbursementEngine(
            state, self.store, approvals, ledger, self.audit_trail
        )
        self.release_engine = EscrowReleaseEngine(
            state, self.store, repayments, impacts, ledger, self.audit_trail
        )

    def _restore_oracle_contract(self) -> None:
        """Load an oracle registration persisted by an earlier process"""
        stored = self.storage.load(self.contract_state_table, "oracle_contract")
        if stored:
            self.state.set_oracle_contract(stored["address"])

    @classmethod
    def from_config(cls, cfg: Optional[EscrowLendingConfig] = None) -> 'LendingSystem':
        """
        Build a system from configuration.

        Uses the oracle service client when ``oracle_service_url`` is set.
        Without one, ``sandbox_mode`` must be enabled and an in-memory oracle
        answers from the configured approved, repaid and verified ids. The
        ledger keeps its balances in the same storage as the loans; pools
        listed in ``pool_balances`` are funded the first time they are seen.

        Raises:
            ValueError: if neither an oracle service nor sandbox mode is configured
        """
        cfg = cfg or get_config()

        if cfg.oracle_service_url:
            oracle = OracleServiceClient(
                base_url=cfg.oracle_service_url,
                timeout=cfg.oracle_timeout,
                api_key=cfg.oracle_api_key or None
            )
        elif cfg.sandbox_mode:
            oracle = InMemoryOracle()
            for proposal_id in cfg.approved_proposals:
                oracle.approve_proposal(proposal_id)
            for loan_id in cfg.repaid_loans:
                oracle.mark_repaid(loan_id)
            for proposal_id in cfg.verified_proposals:
                oracle.verify_impact(proposal_id)
        else:
            raise ValueError("oracle_service_url is required unless sandbox_mode is enabled")

        state = ContractState.from_config(cfg)
        storage = create_storage(cfg.database_url)
        ledger = StorageLedger(storage, state.pool_contract, state.custody_identity)

        with storage.atomic():
            for pool_id, amount in cfg.pool_balances.items():
                if ledger.seed_pool(pool_id, amount):
                    get_logger("escrow_lending.system").info(f"Pool {pool_id} funded with {amount}")

        return cls(
            storage=storage,
            state=state,
            ledger=ledger,
            approvals=oracle,
            repayments=oracle,
            impacts=oracle,
            enable_audit_logging=cfg.enable_audit_logging
        )

    def disburse_loan(
        self,
        pool_id: int,
        proposal_id: int,
        amount: int,
        escrow_duration: int,
        interest_rate: int,
        grace_period: int,
        currency: Union[str, Currency],
        caller: str,
        current_time: int
    ) -> Result[int]:
        """Disburse a loan to ``caller``; returns the new loan id"""
        request = DisbursementRequest(
            pool_id=pool_id,
            proposal_id=proposal_id,
            amount=amount,
            escrow_duration=escrow_duration,
            interest_rate=interest_rate,
            grace_period=grace_period,
            currency=currency
        )
        with self._lock:
            try:
                return Result.success(
                    self.disbursement_engine.disburse(request, caller, current_time)
                )
            except LendingError as e:
                return Result.failure(e.code)

    def release_escrow(self, loan_id: int, caller: str, current_time: int) -> Result[bool]:
        """Release the escrow of ``loan_id`` to its borrower"""
        with self._lock:
            try:
                return Result.success(self.release_engine.release(loan_id, caller, current_time))
            except LendingError as e:
                return Result.failure(e.code)

    def set_oracle_contract(self, address: str, caller: Optional[str] = None) -> Result[bool]:
        """
        Register the impact oracle address, overwriting any previous one.

        Authorization is decided by the governance collaborator before this
        is called.
        """
        if not address:
            return Result.failure(ErrorCode.INVALID_ORACLE)

        with self._lock:
            with self.storage.atomic():
                previous = self.state.oracle_contract
                self.storage.save(self.contract_state_table, "oracle_contract", {"address": address})
                if self.audit_trail:
                    self.audit_trail.log_event(
                        event_type=AuditEventType.ORACLE_REGISTERED,
                        entity_type="contract",
                        entity_id="oracle",
                        user_id=caller,
                        metadata={"address": address, "previous": previous}
                    )
                self.state.set_oracle_contract(address)

            log_action(
                self.logger, "info", "Oracle contract registered",
                user_id=caller, action="set_oracle_contract", resource="contract:oracle",
                extra={"address": address, "previous": previous}
            )
            return Result.success(True)

    def get_loan(self, loan_id: int) -> Result[Loan]:
        loan = self.store.get_loan(loan_id)
        if loan is None:
            return Result.failure(ErrorCode.NOT_FOUND)
        return Result.success(loan)

    def get_escrow(self, loan_id: int) -> Result[Escrow]:
        escrow = self.store.get_escrow(loan_id)
        if escrow is None:
            return Result.failure(ErrorCode.NOT_FOUND)
        return Result.success(escrow)

    def get_loan_count(self) -> Result[int]:
        return Result.success(self.store.loan_count())

    def list_loans(self, borrower: Optional[str] = None) -> List[Loan]:
        return self.store.list_loans(borrower)

    def get_contract_state(self) -> Dict[str, Any]:
        snapshot = self.state.to_dict()
        snapshot["loan_count"] = self.store.loan_count()
        return snapshot

    def verify_audit_trail(self) -> Dict[str, Any]:
        if not self.audit_trail:
            return {"valid": True, "total_events": 0, "hash_errors": [], "chain_breaks": [],
                    "enabled": False}
        return self.audit_trail.verify_integrity()

    def close(self) -> None:
        self.storage.close()
