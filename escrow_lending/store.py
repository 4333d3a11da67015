"""
Loan/Escrow Store Module

Authoritative mapping of loan and escrow records plus the loan id counter.
Only the disbursement and release engines write through this store.
"""

from typing import List, Optional

from .errors import ErrorCode, LendingError
from .loans import Loan, Escrow
from .storage import StorageInterface


class LoanEscrowStore:
    """Loan and escrow records keyed by a monotonically assigned loan id"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.loans_table = "loans"
        self.escrows_table = "escrows"
        self.counters_table = "counters"
        self._loan_counter_key = "next_loan_id"

    @property
    def next_loan_id(self) -> int:
        """The id the next disbursement will receive; equals loans ever created"""
        data = self.storage.load(self.counters_table, self._loan_counter_key)
        return data["value"] if data else 0

    def loan_count(self) -> int:
        return self.next_loan_id

    def get_loan(self, loan_id: int) -> Optional[Loan]:
        data = self.storage.load(self.loans_table, str(loan_id))
        return Loan.from_dict(data) if data else None

    def get_escrow(self, loan_id: int) -> Optional[Escrow]:
        data = self.storage.load(self.escrows_table, str(loan_id))
        return Escrow.from_dict(data) if data else None

    def list_loans(self, borrower: Optional[str] = None) -> List[Loan]:
        if borrower is None:
            records = self.storage.load_all(self.loans_table)
        else:
            records = self.storage.find(self.loans_table, {"borrower": borrower})
        return sorted((Loan.from_dict(r) for r in records), key=lambda loan: loan.id)

    def insert_pair(self, loan: Loan, escrow: Escrow) -> None:
        """
        Store a new loan with its escrow and advance the id counter.

        Must run inside ``storage.atomic()`` so the pair and the counter land
        together.
        """
        if loan.id != escrow.loan_id or loan.id != self.next_loan_id:
            raise ValueError(f"Loan {loan.id} does not match the next id {self.next_loan_id}")

        key = str(loan.id)
        if self.storage.exists(self.loans_table, key) or self.storage.exists(self.escrows_table, key):
            raise LendingError(ErrorCode.ESCROW_ALREADY_EXISTS, f"Loan {loan.id} already has records")

        self.storage.save(self.loans_table, key, loan.to_dict())
        self.storage.save(self.escrows_table, key, escrow.to_dict())
        self.storage.save(self.counters_table, self._loan_counter_key, {"value": loan.id + 1})

    def update_pair(self, loan: Loan, escrow: Escrow) -> None:
        """Persist mutations of an existing loan and its escrow"""
        key = str(loan.id)
        self.storage.save(self.loans_table, key, loan.to_dict())
        self.storage.save(self.escrows_table, key, escrow.to_dict())
