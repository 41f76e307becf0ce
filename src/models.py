from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class DisputeState(Enum):
    NORMAL = "normal"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


class ProcessingResult(Enum):
    SUCCESS = "success"
    ACCOUNT_LOCKED = "account_locked"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    CLIENT_MISMATCH = "client_mismatch"
    INVALID_DISPUTE_STATE = "invalid_dispute_state"
    INVALID_AMOUNT = "invalid_amount"


MONEY_MOVING_TYPES = frozenset({TransactionType.DEPOSIT, TransactionType.WITHDRAWAL})


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class StoredTransaction:
    """History entry for a deposit or withdrawal that was applied."""

    transaction_id: int
    client_id: int
    amount: Decimal
    transaction_type: TransactionType
    dispute_state: DisputeState = DisputeState.NORMAL

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "StoredTransaction":
        return cls(
            transaction_id=transaction.transaction_id,
            client_id=transaction.client_id,
            amount=transaction.amount,
            transaction_type=transaction.transaction_type,
        )


@dataclass(frozen=True)
class AccountSnapshot:
    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


@dataclass
class ClientAccount:
    """
    Balances of a single client.

    Every operation returns a ProcessingResult instead of raising, and leaves
    the account untouched unless it returns SUCCESS. A locked account refuses
    all of them.
    """

    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    def deposit(self, amount: Decimal) -> ProcessingResult:
        if self.locked:
            return ProcessingResult.ACCOUNT_LOCKED
        self.available += amount
        return ProcessingResult.SUCCESS

    def withdraw(self, amount: Decimal) -> ProcessingResult:
        if self.locked:
            return ProcessingResult.ACCOUNT_LOCKED
        if self.available < amount:
            return ProcessingResult.INSUFFICIENT_FUNDS
        self.available -= amount
        return ProcessingResult.SUCCESS

    def hold(self, amount: Decimal) -> ProcessingResult:
        if self.locked:
            return ProcessingResult.ACCOUNT_LOCKED
        self.available -= amount
        self.held += amount
        return ProcessingResult.SUCCESS

    def release(self, amount: Decimal) -> ProcessingResult:
        if self.locked:
            return ProcessingResult.ACCOUNT_LOCKED
        self.held -= amount
        self.available += amount
        return ProcessingResult.SUCCESS

    def chargeback(self, amount: Decimal) -> ProcessingResult:
        if self.locked:
            return ProcessingResult.ACCOUNT_LOCKED
        self.held -= amount
        self.locked = True
        return ProcessingResult.SUCCESS

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            client_id=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


@dataclass
class ProcessingStats:
    """Counters for tracking processing statistics."""

    processed: int = 0
    skipped: int = 0
    rejected_rows: int = 0
    skip_reasons: Counter = field(default_factory=Counter)

    def record_success(self) -> None:
        self.processed += 1

    def record_skip(self, result: ProcessingResult) -> None:
        self.skipped += 1
        self.skip_reasons[result] += 1

    def record_rejected_row(self) -> None:
        self.rejected_rows += 1
