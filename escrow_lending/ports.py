"""
External Collaborator Ports

Capability interfaces for the ledger transfer primitive and the approval,
repayment and impact oracles, a ledger kept in the lending storage, and
deterministic in-memory adapters used for tests and sandbox deployments.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List
import logging

from .storage import StorageInterface

logger = logging.getLogger("escrow_lending.ports")


class ApprovalOracle(ABC):
    """Governance registry deciding whether a proposal is approved"""

    @abstractmethod
    def is_proposal_approved(self, proposal_id: int) -> bool:
        pass


class RepaymentOracle(ABC):
    """Repayment-tracking ledger"""

    @abstractmethod
    def is_repayment_complete(self, loan_id: int) -> bool:
        pass


class ImpactOracle(ABC):
    """Third-party impact-verification service"""

    @abstractmethod
    def is_impact_verified(self, proposal_id: int) -> bool:
        pass


class LedgerTransferPort(ABC):
    """Token movement between pools, custody and recipients"""

    @abstractmethod
    def get_pool_balance(self, pool_id: int) -> int:
        pass

    @abstractmethod
    def transfer_from_pool(self, pool_id: int, amount: int, recipient: str) -> bool:
        """Move funds out of a pool; False when the pool cannot cover the amount"""
        pass

    @abstractmethod
    def transfer_from_custody(self, amount: int, recipient: str) -> bool:
        """Move funds out of contract-held custody"""
        pass


@dataclass(frozen=True)
class TransferRecord:
    """A completed fund movement"""
    amount: int
    source: str
    destination: str


class InMemoryLedger(LedgerTransferPort):
    """Ledger adapter backed by a dict of pool balances"""

    def __init__(self, pool_identity: str, custody_identity: str = "contract"):
        self.pool_identity = pool_identity
        self.custody_identity = custody_identity
        self.balances: Dict[int, int] = {}
        self.custody_balance = 0
        self.transfers: List[TransferRecord] = []

    def fund_pool(self, pool_id: int, amount: int) -> None:
        self.balances[pool_id] = self.balances.get(pool_id, 0) + amount

    def get_pool_balance(self, pool_id: int) -> int:
        return self.balances.get(pool_id, 0)

    def transfer_from_pool(self, pool_id: int, amount: int, recipient: str) -> bool:
        balance = self.get_pool_balance(pool_id)
        if balance < amount:
            logger.warning(f"Pool {pool_id} balance {balance} cannot cover {amount}")
            return False
        self.balances[pool_id] = balance - amount
        if recipient == self.custody_identity:
            self.custody_balance += amount
        self.transfers.append(TransferRecord(amount, self.pool_identity, recipient))
        return True

    def transfer_from_custody(self, amount: int, recipient: str) -> bool:
        if self.custody_balance < amount:
            logger.warning(f"Custody balance {self.custody_balance} cannot cover {amount}")
            return False
        self.custody_balance -= amount
        self.transfers.append(TransferRecord(amount, self.custody_identity, recipient))
        return True


class InMemoryOracle(ApprovalOracle, RepaymentOracle, ImpactOracle):
    """Approval, repayment and impact facts held in dicts; unknown ids are False"""

    def __init__(self):
        self.approvals: Dict[int, bool] = {}
        self.repayments: Dict[int, bool] = {}
        self.impacts: Dict[int, bool] = {}

    def approve_proposal(self, proposal_id: int, approved: bool = True) -> None:
        self.approvals[proposal_id] = approved

    def mark_repaid(self, loan_id: int, complete: bool = True) -> None:
        self.repayments[loan_id] = complete

    def verify_impact(self, proposal_id: int, verified: bool = True) -> None:
        self.impacts[proposal_id] = verified

    def is_proposal_approved(self, proposal_id: int) -> bool:
        return self.approvals.get(proposal_id, False)

    def is_repayment_complete(self, loan_id: int) -> bool:
        return self.repayments.get(loan_id, False)

    def is_impact_verified(self, proposal_id: int) -> bool:
        return self.impacts.get(proposal_id, False)


class StorageLedger(LedgerTransferPort):
    """
    Ledger adapter keeping pool and custody balances in the lending storage.

    Balances share the storage of the loan and escrow records, so a transfer
    made inside ``storage.atomic()`` commits or rolls back together with them
    and custody survives a restart.
    """

    def __init__(self, storage: StorageInterface, pool_identity: str,
                 custody_identity: str = "contract"):
        self.storage = storage
        self.pool_identity = pool_identity
        self.custody_identity = custody_identity
        self.table_name = "ledger_balances"
        self._custody_key = "custody"

    @staticmethod
    def _pool_key(pool_id: int) -> str:
        return f"pool:{pool_id}"

    def _balance(self, key: str) -> int:
        data = self.storage.load(self.table_name, key)
        return data["balance"] if data else 0

    def _set_balance(self, key: str, balance: int) -> None:
        self.storage.save(self.table_name, key, {"account": key, "balance": balance})

    @property
    def custody_balance(self) -> int:
        return self._balance(self._custody_key)

    def fund_pool(self, pool_id: int, amount: int) -> None:
        key = self._pool_key(pool_id)
        self._set_balance(key, self._balance(key) + amount)

    def seed_pool(self, pool_id: int, amount: int) -> bool:
        """Fund a pool that has never held a balance; returns False otherwise"""
        if self.storage.exists(self.table_name, self._pool_key(pool_id)):
            return False
        self.fund_pool(pool_id, amount)
        return True

    def get_pool_balance(self, pool_id: int) -> int:
        return self._balance(self._pool_key(pool_id))

    def transfer_from_pool(self, pool_id: int, amount: int, recipient: str) -> bool:
        key = self._pool_key(pool_id)
        balance = self._balance(key)
        if balance < amount:
            logger.warning(f"Pool {pool_id} balance {balance} cannot cover {amount}")
            return False
        self._set_balance(key, balance - amount)
        if recipient == self.custody_identity:
            self._set_balance(self._custody_key, self.custody_balance + amount)
        logger.info(f"Transferred {amount} from pool {pool_id} to {recipient}")
        return True

    def transfer_from_custody(self, amount: int, recipient: str) -> bool:
        balance = self.custody_balance
        if balance < amount:
            logger.warning(f"Custody balance {balance} cannot cover {amount}")
            return False
        self._set_balance(self._custody_key, balance - amount)
        logger.info(f"Transferred {amount} from custody to {recipient}")
        return True
