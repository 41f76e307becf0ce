from typing import Tuple, Optional

from models import (
    DisputeState,
    ProcessingResult,
    StoredTransaction,
    Transaction,
    TransactionType,
)
from state_manager import StateManager


class TransactionProcessor:
    """
    Applies transactions against state, one at a time.
    Returns ProcessingResult: SUCCESS or the reason the record was skipped.
    A skipped record never leaves a partial change behind.
    """

    def __init__(self, state: StateManager):
        self._state = state

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        # a locked account rejects every later record, whatever it references
        account = self._state.get_account(transaction.client_id)
        if account is not None and account.locked:
            return ProcessingResult.ACCOUNT_LOCKED

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(transaction)
            case _:
                raise ValueError(f"Unsupported transaction type: {transaction.transaction_type!r}")

    def _validate_money_movement(self, transaction: Transaction) -> Optional[ProcessingResult]:
        if transaction.amount is None or transaction.amount <= 0:
            return ProcessingResult.INVALID_AMOUNT
        if self._state.has_transaction(transaction.transaction_id):
            return ProcessingResult.DUPLICATE_TRANSACTION
        return None

    def _handle_deposit(self, transaction: Transaction) -> ProcessingResult:
        rejection = self._validate_money_movement(transaction)
        if rejection is not None:
            return rejection

        account = self._state.get_or_create_account(transaction.client_id)
        result = account.deposit(transaction.amount)
        if result == ProcessingResult.SUCCESS:
            self._state.store_transaction(transaction)
        return result

    def _handle_withdrawal(self, transaction: Transaction) -> ProcessingResult:
        rejection = self._validate_money_movement(transaction)
        if rejection is not None:
            return rejection

        account = self._state.get_or_create_account(transaction.client_id)
        result = account.withdraw(transaction.amount)
        # declined withdrawals stay out of history, so they can never be disputed
        if result == ProcessingResult.SUCCESS:
            self._state.store_transaction(transaction)
        return result

    def _find_referenced(
        self, transaction: Transaction, expected_state: DisputeState
    ) -> Tuple[Optional[StoredTransaction], ProcessingResult]:
        original = self._state.get_transaction(transaction.transaction_id)

        if original is None:
            return None, ProcessingResult.TRANSACTION_NOT_FOUND

        if original.client_id != transaction.client_id:
            return None, ProcessingResult.CLIENT_MISMATCH

        if original.dispute_state != expected_state:
            return None, ProcessingResult.INVALID_DISPUTE_STATE

        return original, ProcessingResult.SUCCESS

    def _handle_dispute(self, transaction: Transaction) -> ProcessingResult:
        original, result = self._find_referenced(transaction, DisputeState.NORMAL)
        if original is None:
            return result

        # withdrawals are disputed like deposits: the stored amount moves into held
        account = self._state.get_or_create_account(original.client_id)
        result = account.hold(original.amount)
        if result == ProcessingResult.SUCCESS:
            original.dispute_state = DisputeState.DISPUTED
        return result

    def _handle_resolve(self, transaction: Transaction) -> ProcessingResult:
        original, result = self._find_referenced(transaction, DisputeState.DISPUTED)
        if original is None:
            return result

        account = self._state.get_or_create_account(original.client_id)
        result = account.release(original.amount)
        if result == ProcessingResult.SUCCESS:
            original.dispute_state = DisputeState.RESOLVED
        return result

    def _handle_chargeback(self, transaction: Transaction) -> ProcessingResult:
        original, result = self._find_referenced(transaction, DisputeState.DISPUTED)
        if original is None:
            return result

        account = self._state.get_or_create_account(original.client_id)
        result = account.chargeback(original.amount)
        if result == ProcessingResult.SUCCESS:
            original.dispute_state = DisputeState.CHARGED_BACK
        return result
